"""
Error types for reconciliation.

Raised inside the reconciler and store adapters, converted into a
ReconcileResult at the on_change boundary.
"""

from typing import Optional


class ReconcileError(Exception):
    """Base class for every failure a reconciliation can report."""

    def __init__(self, message: str, group_id: Optional[str] = None):
        super().__init__(message)
        self.group_id = group_id


class UnresolvableGroup(ReconcileError):
    """Neither snapshot of a notification carries a group identifier."""


class StoreReadError(ReconcileError):
    """Querying the group's records failed."""


class StoreWriteError(ReconcileError):
    """Writing the group's aggregate failed."""
