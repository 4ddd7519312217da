"""
Reconciliation for RatingSync.

- AggregationReconciler: resolve restaurant, recompute, publish
- AggregateAuditor: stored vs recomputed drift report
"""
