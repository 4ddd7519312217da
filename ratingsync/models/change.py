"""
Change notification model.

A change notification is the before/after snapshot pair for one review
mutation, narrowed to one of four shapes: Create, Update, Delete, NoOp.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


class ChangeNotification:
    """
    Base class for the four notification shapes.

    A snapshot is the review document as a dict, or None when the
    review did not exist on that side of the change.
    """
    kind = ""

    @property
    def before(self) -> Optional[dict]:
        return None

    @property
    def after(self) -> Optional[dict]:
        return None

    def snapshots(self) -> Tuple[Optional[dict], Optional[dict]]:
        return self.before, self.after

    @staticmethod
    def from_snapshots(
        before: Optional[dict],
        after: Optional[dict]
    ) -> "ChangeNotification":
        """
        Classify a raw snapshot pair.

        Args:
            before: Document before the change, or None if it did not exist
            after: Document after the change, or None if it was deleted

        Returns:
            Create, Update, Delete or NoOp
        """
        if before is None and after is None:
            return NoOp()
        if before is None:
            return Create(after)
        if after is None:
            return Delete(before)
        return Update(before, after)


@dataclass(frozen=True)
class Create(ChangeNotification):
    created: dict
    kind = "create"

    @property
    def after(self) -> Optional[dict]:
        return self.created


@dataclass(frozen=True)
class Update(ChangeNotification):
    previous: dict
    current: dict
    kind = "update"

    @property
    def before(self) -> Optional[dict]:
        return self.previous

    @property
    def after(self) -> Optional[dict]:
        return self.current


@dataclass(frozen=True)
class Delete(ChangeNotification):
    deleted: dict
    kind = "delete"

    @property
    def before(self) -> Optional[dict]:
        return self.deleted


@dataclass(frozen=True)
class NoOp(ChangeNotification):
    kind = "noop"
