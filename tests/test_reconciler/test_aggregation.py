"""
Unit tests for the Aggregation Reconciler.

Uses the in-memory store; the store's fail_reads/fail_writes flags stand in
for an unavailable backend.
"""

import random
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest
from ratingsync.errors import StoreReadError, StoreWriteError, UnresolvableGroup
from ratingsync.models.aggregate import Aggregate
from ratingsync.models.change import ChangeNotification, Create, Delete, NoOp, Update
from ratingsync.reconciler.aggregation import (
    AggregationReconciler,
    FAILED,
    PUBLISHED,
    SKIPPED,
)
from ratingsync.store.memory import InMemoryRecordStore


@pytest.fixture
def store():
    """Restaurant R1 with ratings 5, 3, 4."""
    store = InMemoryRecordStore()
    store.put_group("R1", {"name": "Trattoria"})
    store.put_record("rev-1", {"restaurantId": "R1", "rating": 5})
    store.put_record("rev-2", {"restaurantId": "R1", "rating": 3})
    store.put_record("rev-3", {"restaurantId": "R1", "rating": 4})
    return store


@pytest.fixture
def reconciler(store):
    return AggregationReconciler(store)


def test_resolve_group_prefers_after(reconciler):
    notification = Update({"restaurantId": "R1"}, {"restaurantId": "R2"})
    assert reconciler.resolve_group(notification) == "R2"


def test_resolve_group_delete_uses_before(reconciler):
    assert reconciler.resolve_group(Delete({"restaurantId": "R1"})) == "R1"


def test_resolve_group_falls_back_to_before(reconciler):
    """An update whose after snapshot lost its id still resolves from before."""
    notification = Update({"restaurantId": "R1"}, {"rating": 3})
    assert reconciler.resolve_group(notification) == "R1"


def test_resolve_group_unresolvable(reconciler):
    with pytest.raises(UnresolvableGroup):
        reconciler.resolve_group(Create({"rating": 4}))
    with pytest.raises(UnresolvableGroup):
        reconciler.resolve_group(Update({"restaurantId": ""}, {"rating": 4}))


def test_create_example(store, reconciler):
    """Adding a 4th review rated 4 to [5, 3, 4] gives 4 reviews averaging 4.0."""
    after = {"restaurantId": "R1", "rating": 4}
    store.put_record("rev-4", after)

    result = reconciler.on_change(Create(after))

    assert result.status == PUBLISHED
    assert result.group_id == "R1"
    assert result.aggregate == Aggregate(count=4, average=4.0)
    assert store.get_aggregate("R1") == Aggregate(count=4, average=4.0)


def test_delete_example(store, reconciler):
    """Deleting the rating-3 review from [5, 3, 4, 4] gives 13/3."""
    store.put_record("rev-4", {"restaurantId": "R1", "rating": 4})
    reconciler.on_change(Create({"restaurantId": "R1", "rating": 4}))

    store.delete_record("rev-2")
    result = reconciler.on_change(Delete({"restaurantId": "R1", "rating": 3}))

    assert result.aggregate.count == 3
    assert result.aggregate.average == pytest.approx(13 / 3)


def test_publish_preserves_other_restaurant_fields(store, reconciler):
    reconciler.on_change(Update({"restaurantId": "R1"}, {"restaurantId": "R1"}))

    assert store.restaurants["R1"] == {"name": "Trattoria", "ratingCount": 3, "avgRating": 4.0}


def test_delete_last_review():
    """Removing the only review yields count 0 and average 0.0."""
    store = InMemoryRecordStore()
    reconciler = AggregationReconciler(store)
    store.put_record("rev-1", {"restaurantId": "R9", "rating": 5})
    reconciler.on_change(Create({"restaurantId": "R9", "rating": 5}))

    store.delete_record("rev-1")
    result = reconciler.on_change(Delete({"restaurantId": "R9", "rating": 5}))

    assert result.status == PUBLISHED
    assert store.get_aggregate("R9") == Aggregate(count=0, average=0.0)


def test_missing_rating_counts_as_zero(store, reconciler):
    store.put_record("rev-4", {"restaurantId": "R1"})

    result = reconciler.on_change(Create({"restaurantId": "R1"}))

    assert result.aggregate.count == 4
    assert result.aggregate.average == 3.0


def test_noop_performs_no_read_or_write(store, reconciler):
    result = reconciler.on_change(NoOp())

    assert result.status == SKIPPED
    assert store.read_calls == 0
    assert store.write_calls == 0


def test_unresolvable_is_skipped_not_failed(store, reconciler):
    result = reconciler.on_snapshots(None, {"rating": 5})

    assert result.status == SKIPPED
    assert result.ok
    assert isinstance(result.error, UnresolvableGroup)
    assert store.read_calls == 0
    assert store.write_calls == 0


def test_read_failure_returns_failed_without_write(store, reconciler):
    store.fail_reads = True

    result = reconciler.on_change(Create({"restaurantId": "R1", "rating": 1}))

    assert result.status == FAILED
    assert not result.ok
    assert isinstance(result.error, StoreReadError)
    assert store.write_calls == 0
    assert store.get_aggregate("R1") is None


def test_write_failure_returns_failed(store, reconciler):
    store.fail_writes = True

    result = reconciler.on_change(Create({"restaurantId": "R1", "rating": 1}))

    assert result.status == FAILED
    assert isinstance(result.error, StoreWriteError)
    assert result.error.group_id == "R1"
    assert store.get_aggregate("R1") is None


def test_unexpected_store_errors_propagate():
    """Only typed store errors are converted into results."""
    store = Mock()
    store.group_field = "restaurantId"
    store.query_by_group.side_effect = RuntimeError("bug")
    reconciler = AggregationReconciler(store)

    with pytest.raises(RuntimeError):
        reconciler.on_change(Create({"restaurantId": "R1"}))
    store.write_aggregate.assert_not_called()


def test_replay_is_idempotent(store, reconciler):
    notification = Create({"restaurantId": "R1", "rating": 4})
    store.put_record("rev-4", {"restaurantId": "R1", "rating": 4})

    first = reconciler.on_change(notification)
    for _ in range(5):
        again = reconciler.on_change(notification)

    assert again.aggregate == first.aggregate
    assert store.get_aggregate("R1") == Aggregate(count=4, average=4.0)


def test_self_heals_corrupted_aggregate(store, reconciler):
    store.write_aggregate("R1", Aggregate(count=99, average=1.0))

    reconciler.on_change(Update({"restaurantId": "R1", "rating": 3}, {"restaurantId": "R1", "rating": 3}))

    assert store.get_aggregate("R1") == Aggregate(count=3, average=4.0)


def test_moving_review_reconciles_both_restaurants(store, reconciler):
    before = {"restaurantId": "R1", "rating": 3}
    after = {"restaurantId": "R2", "rating": 3}
    store.put_record("rev-2", after)

    result = reconciler.on_change(Update(before, after))

    assert result.group_id == "R2"
    assert [r.group_id for r in result.related] == ["R1"]
    assert store.get_aggregate("R2") == Aggregate(count=1, average=3.0)
    assert store.get_aggregate("R1") == Aggregate(count=2, average=4.5)


def test_convergence_with_shuffled_duplicates(store, reconciler):
    """Any order and any duplication of deliveries ends at the true aggregate."""
    events = []
    for i, rating in enumerate([2, 5, None, 1], start=10):
        doc = {"restaurantId": "R1", "rating": rating}
        store.put_record(f"rev-{i}", doc)
        events.append(ChangeNotification.from_snapshots(None, doc))
    store.delete_record("rev-1")
    events.append(ChangeNotification.from_snapshots({"restaurantId": "R1", "rating": 5}, None))

    deliveries = events * 3
    random.Random(7).shuffle(deliveries)
    for notification in deliveries:
        reconciler.on_change(notification)

    # Remaining ratings: 3, 4, 2, 5, None, 1
    assert store.get_aggregate("R1") == Aggregate(count=6, average=15 / 6)


def test_concurrent_reconciliations_converge(store, reconciler):
    for i in range(20):
        store.put_record(f"extra-{i}", {"restaurantId": "R1", "rating": i % 5 + 1})

    notification = Create({"restaurantId": "R1", "rating": 1})
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: reconciler.on_change(notification), range(50)))

    assert all(r.status == PUBLISHED for r in results)
    expected = Aggregate.from_reviews(store.query_by_group("R1"))
    assert expected.count == 23
    assert store.get_aggregate("R1") == expected


def test_reconcile_all_continues_past_failures(store, reconciler):
    store.put_record("rev-9", {"restaurantId": "R2", "rating": 2})
    original_query = store.query_by_group

    def flaky_query(group_id):
        if group_id == "R1":
            raise StoreReadError("unavailable", group_id)
        return original_query(group_id)

    store.query_by_group = flaky_query
    results = reconciler.reconcile_all()

    assert [r.group_id for r in results] == ["R1", "R2"]
    assert [r.status for r in results] == [FAILED, PUBLISHED]
    assert store.get_aggregate("R2") == Aggregate(count=1, average=2.0)


# Run tests if executed directly
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
