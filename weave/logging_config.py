"""Logging setup for weave.

Engine modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves. Entry points (the HTTP service, scripts)
call :func:`setup_weave_logging` once.

Two outputs under ``$WEAVE_DATA_DIR/logs`` (default ``~/.weave/logs``):

- ``local-<date>.log``: everything the ``weave`` logger emits at or above
  the configured level;
- ``engine-events-<date>.log``: one line per engine entry point call,
  written by :func:`log_engine_event`, for auditing what ran for whom.
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER = "weave"


def get_data_dir() -> Path:
    return Path(os.environ.get("WEAVE_DATA_DIR") or Path.home() / ".weave")


def get_log_dir() -> Path:
    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def setup_weave_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``weave`` logger. Safe to call more than once.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.

    Returns:
        The configured ``weave`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    resolved = getattr(logging, str(level).upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logger.setLevel(resolved)

    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = logging.FileHandler(get_log_dir() / f"local-{_today()}.log", encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if resolved <= logging.DEBUG:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``weave`` namespace."""
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_engine_event(event: str, details: str, owner_id: str = "default") -> None:
    """Append one line to today's engine event log.

    Format: ``<iso timestamp> | <event> | owner=<owner_id> | <details>``
    """
    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    path = get_log_dir() / f"engine-events-{_today()}.log"
    try:
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(f"{timestamp} | {event} | owner={owner_id} | {details}\n")
    except OSError as exc:
        logging.getLogger(__name__).warning("Could not write engine event log: %s", exc)


# ---- Convenience wrappers ----


def log_rank(owner_id: str, updated: int, total_insights: int, total_documents: int) -> None:
    log_engine_event(
        "rank",
        f"updated={updated}, insights={total_insights}, documents={total_documents}",
        owner_id=owner_id,
    )


def log_surface(owner_id: str, query: str, results: int, fallback: bool) -> None:
    # Query text is user content; record its length only
    log_engine_event(
        "surface",
        f"query_chars={len(query)}, results={results}, fallback={fallback}",
        owner_id=owner_id,
    )


def log_classify(owner_id: str, kind: str, item_id: str, score: float) -> None:
    log_engine_event(
        "classify",
        f"kind={kind}, id={item_id[:8]}..., score={score:.3f}",
        owner_id=owner_id,
    )
