"""Time-series store adapters."""

from adapters.storage.in_memory import InMemoryTimeSeriesStore
from adapters.storage.sqlite import SQLiteTimeSeriesStore

__all__ = [
    "InMemoryTimeSeriesStore",
    "SQLiteTimeSeriesStore",
]
