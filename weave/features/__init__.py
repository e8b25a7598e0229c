"""Feature modules for the relevance engine.

Each feature owns one stage of the pipeline and is usable on its own; the
engine facade wires them to a store and an oracle.
"""

from weave.features.classifier import Classifier, neutral_classification
from weave.features.clustering import ClusterConsolidator
from weave.features.patterns import PatternMiner, weave_score
from weave.features.relevance import dynamic_relevance, static_relevance
from weave.features.resurfacing import InsightSpotlight, select_forgotten
from weave.features.surfacing import QuerySurfacer, lexical_search

__all__ = [
    "Classifier",
    "ClusterConsolidator",
    "InsightSpotlight",
    "PatternMiner",
    "QuerySurfacer",
    "dynamic_relevance",
    "lexical_search",
    "neutral_classification",
    "select_forgotten",
    "static_relevance",
    "weave_score",
]
