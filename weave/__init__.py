"""weave: content relevance & retrieval engine for a personal-growth journal.

Classifies captured content, keeps a decaying relevance score per item,
clusters and surfaces content for free-text queries, resurfaces forgotten
items and mines patterns across insights, actions and experiments.
"""

from weave.engine import RelevanceEngine
from weave.oracle import ModelOracle
from weave.protocols import (
    ContentStore,
    InvalidInputError,
    NotFoundError,
    OracleError,
    SemanticOracle,
    StorageError,
    UnauthorizedError,
    WeaveError,
)

__version__ = "0.3.0"

__all__ = [
    "ContentStore",
    "InvalidInputError",
    "ModelOracle",
    "NotFoundError",
    "OracleError",
    "RelevanceEngine",
    "SemanticOracle",
    "StorageError",
    "UnauthorizedError",
    "WeaveError",
]
