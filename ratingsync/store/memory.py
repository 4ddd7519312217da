"""
In-memory record store.

Dict-backed RecordStore used by tests and event replays.
"""

import threading
from typing import Dict, List, Optional

from ratingsync.errors import StoreReadError, StoreWriteError
from ratingsync.models.aggregate import Aggregate
from ratingsync.models.review import Review
from ratingsync.store.base import RecordStore


class InMemoryRecordStore(RecordStore):
    """
    Holds reviews and restaurant documents in dicts.

    The lock only keeps the dicts consistent across threads; it does not
    serialize reconciliations.
    """

    def __init__(self, **field_names):
        super().__init__(**field_names)
        self.reviews: Dict[str, dict] = {}  # review_id -> document
        self.restaurants: Dict[str, dict] = {}  # restaurant_id -> document
        self.fail_reads = False
        self.fail_writes = False
        self.read_calls = 0
        self.write_calls = 0
        self._lock = threading.Lock()

    def put_record(self, review_id: str, data: dict) -> None:
        """Create or replace a review, as the external actor would."""
        with self._lock:
            self.reviews[review_id] = dict(data)

    def delete_record(self, review_id: str) -> None:
        with self._lock:
            self.reviews.pop(review_id, None)

    def put_group(self, group_id: str, data: dict) -> None:
        with self._lock:
            self.restaurants[group_id] = dict(data)

    def query_by_group(self, group_id: str) -> List[Review]:
        with self._lock:
            self.read_calls += 1
            if self.fail_reads:
                raise StoreReadError(f"Query failed for restaurant {group_id}", group_id)
            matching = [
                (review_id, dict(data))
                for review_id, data in self.reviews.items()
                if data.get(self.group_field) == group_id
            ]

        return [self._to_review(review_id, data) for review_id, data in matching]

    def write_aggregate(self, group_id: str, aggregate: Aggregate) -> None:
        with self._lock:
            self.write_calls += 1
            if self.fail_writes:
                raise StoreWriteError(f"Write failed for restaurant {group_id}", group_id)
            document = self.restaurants.setdefault(group_id, {})
            document.update(aggregate.to_document(self.count_field, self.average_field))

    def get_aggregate(self, group_id: str) -> Optional[Aggregate]:
        with self._lock:
            document = self.restaurants.get(group_id)
        if document is None:
            return None
        return Aggregate.from_document(document, self.count_field, self.average_field)

    def list_groups(self) -> List[str]:
        with self._lock:
            groups = set(self.restaurants)
            for data in self.reviews.values():
                group_id = data.get(self.group_field)
                if group_id:
                    groups.add(group_id)
        return sorted(groups, key=str)
