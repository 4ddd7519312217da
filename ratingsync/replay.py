"""
Change Replayer.

Feeds recorded review change events to the reconciler, standing in for
the event-delivery mechanism.
"""

import json
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List

from ratingsync.models.change import ChangeNotification, Delete
from ratingsync.reconciler.aggregation import AggregationReconciler, ReconcileResult

logger = logging.getLogger(__name__)


def load_events(path: str) -> List[Dict]:
    """
    Load recorded change events.

    File format: a JSON list of {"id": ..., "before": {...}|null, "after": {...}|null}.
    "id" is only needed when changes are applied to the store.

    Raises:
        ValueError: If the file is not a list of event objects
    """
    with open(path, 'r') as f:
        events = json.load(f)

    if not isinstance(events, list):
        raise ValueError(f"{path} must contain a JSON list of change events")
    for i, event in enumerate(events):
        if not isinstance(event, dict):
            raise ValueError(f"Event {i} in {path} is not an object")

    logger.info(f"Loaded {len(events)} change events from {path}")
    return events


class ChangeReplayer:
    """
    Dispatches change events to an AggregationReconciler.

    With workers > 1, reconciliations run concurrently on a thread pool,
    the way an at-least-once event bus would invoke them.
    """

    def __init__(
        self,
        reconciler: AggregationReconciler,
        workers: int = 1,
        apply_changes: bool = False
    ):
        """
        Initialize replayer.

        Args:
            reconciler: Reconciler receiving each notification
            workers: Number of concurrent reconciliations
            apply_changes: Write each event's after snapshot to the store
                (or delete the review) before dispatching it
        """
        if workers < 1:
            raise ValueError(f"Invalid workers: {workers}. Must be >= 1")
        self.reconciler = reconciler
        self.workers = workers
        self.apply_changes = apply_changes

    def replay(self, events: List[Dict]) -> Dict[str, int]:
        """
        Replay events in order.

        Store changes are applied sequentially; only reconciliations overlap.

        Returns:
            Count of results per status ("published", "skipped", "failed")
        """
        notifications = [
            ChangeNotification.from_snapshots(event.get("before"), event.get("after"))
            for event in events
        ]

        if self.workers == 1:
            results = []
            for event, notification in zip(events, notifications):
                self._apply(event, notification)
                results.append(self.reconciler.on_change(notification))
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = []
                for event, notification in zip(events, notifications):
                    self._apply(event, notification)
                    futures.append(pool.submit(self.reconciler.on_change, notification))
                results = [future.result() for future in futures]

        summary = self._summarize(results)
        logger.info(
            f"Replayed {len(events)} events: "
            + ", ".join(f"{status}={count}" for status, count in sorted(summary.items()))
        )
        return summary

    def _apply(self, event: Dict, notification: ChangeNotification) -> None:
        if not self.apply_changes or notification.kind == "noop":
            return

        review_id = event.get("id")
        if not review_id:
            raise ValueError("Event without 'id' cannot be applied to the store")

        if isinstance(notification, Delete):
            self.reconciler.store.delete_record(review_id)
        else:
            self.reconciler.store.put_record(review_id, notification.after)

    def _summarize(self, results: List[ReconcileResult]) -> Dict[str, int]:
        summary = Counter()
        for result in results:
            summary[result.status] += 1
            for related in result.related:
                summary[related.status] += 1
        return dict(summary)
