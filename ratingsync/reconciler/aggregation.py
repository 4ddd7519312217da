"""
Aggregation Reconciler.

Reacts to a review change by recomputing the owning restaurant's rating
aggregate from all of its current reviews and overwriting the stored value.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ratingsync.errors import ReconcileError, UnresolvableGroup
from ratingsync.models.aggregate import Aggregate
from ratingsync.models.change import ChangeNotification, NoOp, Update
from ratingsync.store.base import RecordStore

logger = logging.getLogger(__name__)

PUBLISHED = "published"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class ReconcileResult:
    """
    Outcome of one reconciliation, handed back to the event adapter.

    related holds the reconciliation of the restaurant a review moved out of,
    when an update changed the review's restaurant.
    """
    status: str
    group_id: Optional[str] = None
    aggregate: Optional[Aggregate] = None
    error: Optional[ReconcileError] = None
    related: List["ReconcileResult"] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != FAILED and all(r.ok for r in self.related)


class AggregationReconciler:
    """
    Recomputes restaurant rating aggregates on review changes.

    Holds no mutable state and takes no locks: concurrent, duplicated or
    reordered calls all converge because every call re-reads the full
    membership and overwrites the aggregate.
    """

    def __init__(self, store: RecordStore, group_field: Optional[str] = None):
        """
        Initialize reconciler.

        Args:
            store: Record store used for queries and aggregate writes
            group_field: Snapshot field holding the restaurant id
                (defaults to the store's group field)
        """
        self.store = store
        self.group_field = group_field or store.group_field

    def on_change(self, notification: ChangeNotification) -> ReconcileResult:
        """
        Handle one review change.

        Never raises ReconcileError: store failures come back as a FAILED
        result so the caller can apply its own retry policy.

        Args:
            notification: Create, Update, Delete or NoOp

        Returns:
            ReconcileResult describing what was published
        """
        if isinstance(notification, NoOp):
            logger.debug("Ignoring change with no before or after snapshot")
            return ReconcileResult(status=SKIPPED)

        try:
            group_id = self.resolve_group(notification)
        except UnresolvableGroup as e:
            logger.warning(f"No restaurant ID found in review: {e}")
            return ReconcileResult(status=SKIPPED, error=e)

        result = self.reconcile_group(group_id)

        previous = self._moved_from(notification, group_id)
        if previous:
            logger.info(f"Review moved from restaurant {previous} to {group_id}")
            result.related.append(self.reconcile_group(previous))

        return result

    def on_snapshots(self, before: Optional[dict], after: Optional[dict]) -> ReconcileResult:
        """Handle a raw before/after snapshot pair."""
        return self.on_change(ChangeNotification.from_snapshots(before, after))

    def resolve_group(self, notification: ChangeNotification) -> str:
        """
        Find the restaurant a change belongs to.

        The after snapshot wins when it carries an id (create/update);
        otherwise the before snapshot is used (delete).

        Raises:
            UnresolvableGroup: If neither snapshot carries a restaurant id
        """
        for snapshot in (notification.after, notification.before):
            if snapshot is not None:
                group_id = snapshot.get(self.group_field)
                if group_id:
                    return group_id

        raise UnresolvableGroup(
            f"{notification.kind} notification has no '{self.group_field}' on either side"
        )

    def recompute(self, group_id: str) -> Aggregate:
        """
        Compute the aggregate from every review currently in the group.

        Raises:
            StoreReadError: If the query fails
        """
        reviews = self.store.query_by_group(group_id)
        return Aggregate.from_reviews(reviews)

    def publish(self, group_id: str, aggregate: Aggregate) -> None:
        """
        Overwrite the restaurant's stored aggregate.

        Raises:
            StoreWriteError: If the write fails
        """
        logger.info(
            f"Updating restaurant {group_id}: rating {aggregate.average} ({aggregate.count})"
        )
        self.store.write_aggregate(group_id, aggregate)

    def reconcile_group(self, group_id: str) -> ReconcileResult:
        """
        Recompute and publish one restaurant's aggregate.

        Nothing is written unless the full read succeeded.
        """
        try:
            aggregate = self.recompute(group_id)
            self.publish(group_id, aggregate)
        except ReconcileError as e:
            logger.error(f"Reconciliation failed for restaurant {group_id}: {e}")
            return ReconcileResult(status=FAILED, group_id=group_id, error=e)

        return ReconcileResult(status=PUBLISHED, group_id=group_id, aggregate=aggregate)

    def reconcile_all(self, group_ids: Optional[Iterable[str]] = None) -> List[ReconcileResult]:
        """
        Reconcile every restaurant, continuing past failures.

        Args:
            group_ids: Restaurants to sweep (defaults to every group in the store)

        Returns:
            One result per restaurant, in sweep order
        """
        if group_ids is None:
            group_ids = self.store.list_groups()

        results = [self.reconcile_group(group_id) for group_id in group_ids]

        failed = sum(1 for r in results if not r.ok)
        logger.info(f"Reconciled {len(results)} restaurants ({failed} failed)")
        return results

    def _moved_from(self, notification: ChangeNotification, group_id: str) -> Optional[str]:
        if not isinstance(notification, Update):
            return None
        previous = notification.before.get(self.group_field)
        if previous and previous != group_id:
            return previous
        return None
