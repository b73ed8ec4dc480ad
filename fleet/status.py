"""Status enum for revision urgency levels."""

from enum import Enum


class Status(Enum):
    """Revision status, persisted by its string value."""

    PENDING = "pending"
    DUE = "due"
    OVERDUE = "overdue"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """Urgency rank. Lower = more urgent."""
        return _RANKS[self]

    @property
    def is_alerting(self) -> bool:
        return self in (Status.DUE, Status.OVERDUE)


_RANKS = {
    Status.OVERDUE: 1,
    Status.DUE: 2,
    Status.PENDING: 3,
    Status.COMPLETED: 4,
}
