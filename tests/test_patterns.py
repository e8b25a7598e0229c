"""Tests for weave.features.patterns (weave mining)."""

from datetime import timedelta

import pytest

from weave.features.patterns import (
    PatternMiner,
    dedupe_patterns,
    identity_keywords,
    weave_message,
    weave_score,
)
from weave.types import IdentityProfile, Pattern, PatternType, Topic


def miner(insights=(), actions=(), experiments=(), identity=None, topics=()):
    return PatternMiner(list(insights), list(actions), list(experiments), identity, list(topics))


@pytest.fixture
def sleep_topic():
    return Topic(id="t-sleep", name="Sleep")


class TestIdentityKeywords:
    def test_splits_on_whitespace_commas_and_periods(self):
        identity = IdentityProfile(owner_id="u", narrative_text="Calm, focused.Writer who ships")
        assert identity_keywords(identity) == ["calm", "focused", "writer", "ships"]

    def test_keeps_first_thirty(self):
        identity = IdentityProfile(
            owner_id="u", narrative_text=" ".join(f"word{n}" for n in range(40))
        )
        assert len(identity_keywords(identity)) == 30

    def test_no_identity(self):
        assert identity_keywords(None) == []


class TestTopicLoop:
    def test_insights_and_actions_on_same_topic(self, make_item, make_action, sleep_topic):
        patterns = miner(
            insights=[
                make_item("i-1", topic_id="t-sleep"),
                make_item("i-2", topic_id="t-sleep"),
            ],
            actions=[make_action("a-1", "Went to sleep at ten"), make_action("a-2", "Read")],
            topics=[sleep_topic],
        ).topic_loops()
        assert len(patterns) == 1
        loop = patterns[0]
        assert loop.theme == "Sleep Loop"
        assert loop.pattern_type == PatternType.CONNECTION
        assert loop.strength == 36
        assert [n.id for n in loop.nodes] == ["i-1", "i-2", "a-1"]

    def test_matches_on_topic_words(self, make_item, make_action):
        topic = Topic(id="t-w", name="Creative Writing")
        patterns = miner(
            insights=[make_item("i-1", topic_id="t-w")],
            actions=[make_action("a-1", "Finished writing chapter two")],
            topics=[topic],
        ).topic_loops()
        assert patterns[0].theme == "Creative writing Loop"

    def test_no_actions_no_loop(self, make_item, sleep_topic):
        assert miner(insights=[make_item("i-1", topic_id="t-sleep")], topics=[sleep_topic]).topic_loops() == []

    def test_dangling_topic_reference_ignored(self, make_item, make_action, sleep_topic):
        patterns = miner(
            insights=[make_item("i-1", topic_id="t-deleted")],
            actions=[make_action("a-1", "sleep early")],
            topics=[sleep_topic],
        ).topic_loops()
        assert patterns == []


class TestExperimentPatterns:
    def test_experiment_fuel(self, make_item, make_experiment):
        patterns = miner(
            insights=[
                make_item("i-1", title="Sleep hygiene basics"),
                make_item("i-2", body="Blue light hurts sleep"),
                make_item("i-3", body="Unrelated note"),
            ],
            experiments=[make_experiment("e-1", "Sleep hygiene")],
        ).experiment_fuel()
        assert len(patterns) == 1
        assert patterns[0].pattern_type == PatternType.EXPERIMENT_INSIGHT
        assert patterns[0].strength == 70
        assert [n.id for n in patterns[0].nodes] == ["e-1", "i-1", "i-2"]

    def test_experiment_fuel_needs_two_insights(self, make_item, make_experiment):
        patterns = miner(
            insights=[make_item("i-1", body="sleep")],
            experiments=[make_experiment("e-1", "Sleep hygiene")],
        ).experiment_fuel()
        assert patterns == []

    def test_identity_alignment(self, make_experiment, identity):
        patterns = miner(
            experiments=[make_experiment("e-1", "Healthy writer routines")], identity=identity
        ).identity_alignment()
        assert len(patterns) == 1
        assert patterns[0].strength == 75
        assert "writer, healthy, routines" in patterns[0].description


class TestPillarPatterns:
    def test_momentum(self, make_action):
        actions = [
            make_action("a-1", "run", "Body"),
            make_action("a-2", "lift", "Body"),
            make_action("a-3", "meditate", "Mind"),
            make_action("a-4", "swim", "Body"),
        ]
        patterns = miner(actions=actions).pillar_momentum()
        assert patterns[0].theme == "Body Momentum"
        assert patterns[0].strength == 54
        assert patterns[0].pattern_type == PatternType.FOCUS

    def test_momentum_needs_three(self, make_action):
        actions = [make_action("a-1", "run", "Body"), make_action("a-2", "lift", "Body")]
        assert miner(actions=actions).pillar_momentum() == []

    def test_momentum_tie_keeps_first_logged(self, make_action):
        actions = [make_action(f"m-{n}", "think", "Mind") for n in range(3)] + [
            make_action(f"b-{n}", "move", "Body") for n in range(3)
        ]
        assert miner(actions=actions).pillar_momentum()[0].theme == "Mind Momentum"

    def test_gap(self, make_action):
        actions = [make_action(f"a-{n}", "work", "Business") for n in range(5)]
        patterns = miner(actions=actions).pillar_gap()
        assert patterns[0].pattern_type == PatternType.IMBALANCE
        # Body, Mind, Relationships, Content and Play are missing
        assert patterns[0].strength == 75
        assert [n.title for n in patterns[0].nodes] == ["Body", "Mind", "Relationships"]

    def test_gap_needs_five_actions(self, make_action):
        actions = [make_action(f"a-{n}", "work", "Business") for n in range(4)]
        assert miner(actions=actions).pillar_gap() == []

    def test_week_heavy_on_body(self, make_action):
        actions = [make_action(f"b-{n}", "train", "Body") for n in range(4)] + [
            make_action("m-1", "read", "Mind"),
            make_action("m-2", "journal", "Mind"),
        ]
        patterns = miner(actions=actions).pillar_gap()
        # Business, Relationships, Content and Play are untouched
        assert patterns[0].strength == 60

    def test_one_missing_pillar_is_not_a_gap(self, make_action):
        pillars = ["Business", "Body", "Mind", "Relationships", "Content"]
        actions = [make_action(f"a-{n}", "did it", p) for n, p in enumerate(pillars)]
        # Only Play is missing
        assert miner(actions=actions).pillar_gap() == []

    def test_deep_practice(self, make_action):
        actions = [
            make_action("a-1", "Morning run outside", "Body"),
            make_action("a-2", "Evening yoga session", "Body"),
            make_action("a-3", "Gym strength training", "Body"),
            make_action("a-4", "Morning run again", "Body"),
        ]
        patterns = miner(actions=actions).deep_practice()
        assert patterns[0].theme == "Deep Practice"
        assert patterns[0].strength == 60

    def test_deep_practice_needs_variety(self, make_action):
        actions = [make_action(f"a-{n}", "Morning run", "Body") for n in range(4)]
        assert miner(actions=actions).deep_practice() == []


class TestRecurringTheme:
    def test_topic_across_weeks(self, make_item, sleep_topic):
        insights = [make_item(f"i-{n}", topic_id="t-sleep", days_old=7 * n) for n in range(3)]
        patterns = miner(insights=insights, topics=[sleep_topic]).recurring_theme()
        assert patterns[0].pattern_type == PatternType.RECURRING
        assert patterns[0].strength == 90
        assert '"Sleep" spans 3 weeks' in patterns[0].description

    def test_single_week_is_not_recurring(self, make_item, sleep_topic, now):
        insights = [make_item("i-1", topic_id="t-sleep"), make_item("i-2", topic_id="t-sleep")]
        insights[1].created_at = now - timedelta(hours=5)
        assert miner(insights=insights, topics=[sleep_topic]).recurring_theme() == []


class TestScoring:
    def test_no_patterns_scores_zero(self):
        assert weave_score([]) == 0

    def test_single_connection(self):
        assert weave_score([Pattern("A", PatternType.CONNECTION, 36)]) == 49

    def test_imbalance_weighted_half(self):
        patterns = [
            Pattern("Gap", PatternType.IMBALANCE, 60),
            Pattern("Body Momentum", PatternType.FOCUS, 54),
        ]
        # (30 + 54) / 2 + 16
        assert weave_score(patterns) == 58

    def test_capped_at_hundred(self):
        patterns = [Pattern(f"P{n}", PatternType.CONNECTION, 100) for n in range(6)]
        assert weave_score(patterns) == 100

    def test_messages_by_band(self):
        assert weave_message(0).startswith("Keep capturing")
        assert weave_message(45).startswith("Patterns are forming")
        assert weave_message(70).startswith("Strong alignment")
        assert weave_message(95).startswith("Exceptional integration")


class TestDedupe:
    def test_strongest_per_theme_wins(self):
        patterns = dedupe_patterns(
            [
                Pattern("Sleep Loop", PatternType.CONNECTION, 40),
                Pattern("sleep  loop", PatternType.CONNECTION, 80),
                Pattern("Body Momentum", PatternType.FOCUS, 60),
            ]
        )
        assert [(p.theme, p.strength) for p in patterns] == [
            ("sleep  loop", 80),
            ("Body Momentum", 60),
        ]

    def test_keeps_six(self):
        patterns = [Pattern(f"T{n}", PatternType.FOCUS, n) for n in range(10)]
        assert len(dedupe_patterns(patterns)) == 6


class TestMine:
    def test_empty_snapshot(self):
        result = miner().mine()
        assert result.patterns == []
        assert result.weave_score == 0
        assert result.message.startswith("Keep capturing")

    def test_full_snapshot_stays_in_range(self, make_item, make_action, make_experiment, identity, sleep_topic):
        insights = [
            make_item(f"i-{n}", title="Sleep notes", topic_id="t-sleep", days_old=7 * n)
            for n in range(4)
        ]
        actions = [make_action(f"a-{n}", f"sleep routine step {n}", "Body") for n in range(6)]
        experiments = [make_experiment("e-1", "Sleep routines for a healthy writer")]
        result = miner(insights, actions, experiments, identity, [sleep_topic]).mine()
        assert 0 < len(result.patterns) <= 6
        assert 0 <= result.weave_score <= 100
        themes = {p.theme for p in result.patterns}
        assert "Sleep Loop" in themes
        assert "Body Momentum" in themes
