"""
Record store adapters.

The reconciler reads reviews and writes aggregates only through the
RecordStore interface:
- InMemoryRecordStore: dict-backed, for tests and replays
- JsonRecordStore: one JSON file per document under a data root
"""

from ratingsync.store.base import RecordStore
from ratingsync.store.memory import InMemoryRecordStore
from ratingsync.store.json_store import JsonRecordStore

__all__ = ["RecordStore", "InMemoryRecordStore", "JsonRecordStore"]
