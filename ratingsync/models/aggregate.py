"""
Aggregate data model.

The derived rating summary stored on each restaurant document.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from ratingsync.models.review import Review

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Aggregate:
    """
    Rating count and average for one restaurant.
    Overwritten wholesale on every reconciliation.
    """
    count: int = 0
    average: float = 0.0

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"Invalid count: {self.count}. Must be >= 0")

    @classmethod
    def from_reviews(cls, reviews: Iterable[Review]) -> "Aggregate":
        """
        Compute the aggregate over a group's full membership.

        Missing ratings count toward the total but add 0 to the sum.
        The average is 0.0 for an empty group and is never rounded here.
        """
        count = 0
        total = 0
        for review in reviews:
            count += 1
            total += review.contribution

        if count == 0:
            return cls(count=0, average=0.0)
        return cls(count=count, average=total / count)

    @classmethod
    def from_document(
        cls,
        data: dict,
        count_field: str = "ratingCount",
        average_field: str = "avgRating"
    ) -> Optional["Aggregate"]:
        """
        Read a stored aggregate off a restaurant document.

        Returns None when it was never written or cannot be parsed
        (null, non-numeric, negative or fractional count, non-finite average).
        """
        if count_field not in data and average_field not in data:
            return None

        count = data.get(count_field, 0)
        average = data.get(average_field, 0.0)
        if (
            isinstance(count, bool)
            or not isinstance(count, (int, float))
            or not math.isfinite(count)
            or count < 0
            or count != int(count)
            or isinstance(average, bool)
            or not isinstance(average, (int, float))
            or not math.isfinite(average)
        ):
            logger.warning(
                f"Unreadable stored aggregate {count_field}={count!r}, {average_field}={average!r}"
            )
            return None

        return cls(count=int(count), average=float(average))

    def to_document(
        self,
        count_field: str = "ratingCount",
        average_field: str = "avgRating"
    ) -> dict:
        """Fields to overwrite on the restaurant document."""
        return {
            average_field: self.average,
            count_field: self.count
        }
