"""Progress store adapters"""
from progress_engine.db.progress_store import ProgressStore, TransactionFn
from progress_engine.db.memory_store import InMemoryProgressStore
from progress_engine.db.postgres_store import PostgresProgressStore

__all__ = [
    "ProgressStore",
    "TransactionFn",
    "InMemoryProgressStore",
    "PostgresProgressStore",
]
