"""
Review data model.

Represents a single review document as read from the record store.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class Review:
    """
    A review belonging to one restaurant.
    Read-only to the reconciler, which only counts and averages ratings.
    """
    review_id: str  # Document id in the record store
    restaurant_id: Optional[str]  # Group identifier, None if the document lacks one
    rating: Optional[float] = None  # Missing ratings contribute 0
    extra: dict = field(default_factory=dict)  # Remaining document fields, untouched

    @property
    def contribution(self) -> float:
        """Rating value used in the average; 0 when absent."""
        return self.rating or 0

    @classmethod
    def from_document(
        cls,
        review_id: str,
        data: dict,
        group_field: str = "restaurantId",
        value_field: str = "rating"
    ) -> "Review":
        """
        Build a Review from a raw store document.

        Args:
            review_id: Document id
            data: Document fields
            group_field: Name of the group identifier field
            value_field: Name of the numeric rating field

        Returns:
            Review with a normalized rating (None when missing or non-numeric)
        """
        rating = data.get(value_field)
        if (
            isinstance(rating, bool)
            or not isinstance(rating, (int, float))
            or not math.isfinite(rating)
        ):
            if rating is not None:
                logger.warning(
                    f"Review {review_id} has unusable {value_field}={rating!r}, counting as 0"
                )
            rating = None

        restaurant_id = data.get(group_field) or None
        extra = {k: v for k, v in data.items() if k not in (group_field, value_field)}

        return cls(
            review_id=review_id,
            restaurant_id=restaurant_id,
            rating=rating,
            extra=extra
        )

    def to_document(
        self,
        group_field: str = "restaurantId",
        value_field: str = "rating"
    ) -> dict:
        """Convert back to a store document."""
        data = dict(self.extra)
        if self.restaurant_id is not None:
            data[group_field] = self.restaurant_id
        if self.rating is not None:
            data[value_field] = self.rating
        return data
