"""
Record store interface.

Abstract seam between the reconciler and the durable store holding
reviews and restaurants.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ratingsync.models.aggregate import Aggregate
from ratingsync.models.review import Review


class RecordStore(ABC):
    """
    Abstract record store.

    Implementations raise StoreReadError / StoreWriteError for their own
    I/O failures so the reconciler only ever sees typed errors.
    """

    def __init__(
        self,
        group_field: str = "restaurantId",
        value_field: str = "rating",
        count_field: str = "ratingCount",
        average_field: str = "avgRating"
    ):
        self.group_field = group_field
        self.value_field = value_field
        self.count_field = count_field
        self.average_field = average_field

    @abstractmethod
    def query_by_group(self, group_id: str) -> List[Review]:
        """Return every review whose group identifier equals group_id."""
        pass

    @abstractmethod
    def write_aggregate(self, group_id: str, aggregate: Aggregate) -> None:
        """Overwrite the restaurant's count and average fields."""
        pass

    @abstractmethod
    def get_aggregate(self, group_id: str) -> Optional[Aggregate]:
        """Return the stored aggregate, or None if none was ever written."""
        pass

    @abstractmethod
    def list_groups(self) -> List[str]:
        """Return all known group ids: restaurants plus groups referenced by reviews."""
        pass

    @abstractmethod
    def put_record(self, review_id: str, data: dict) -> None:
        """Create or replace a review. Only replays use this; the reconciler never does."""
        pass

    @abstractmethod
    def delete_record(self, review_id: str) -> None:
        pass

    def _to_review(self, review_id: str, data: dict) -> Review:
        return Review.from_document(
            review_id,
            data,
            group_field=self.group_field,
            value_field=self.value_field
        )
