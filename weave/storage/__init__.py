"""weave storage backends.

ContentStore implementations: an in-memory store for tests and local use,
and a Supabase-backed store for the hosted journal database.
"""

from .memory import InMemoryContentStore
from .supabase_store import SupabaseContentStore, SupabaseStorageError

__all__ = [
    "InMemoryContentStore",
    "SupabaseContentStore",
    "SupabaseStorageError",
]
