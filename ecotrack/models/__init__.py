"""Model package exports."""

from .activity import ActivityRecord  # noqa: F401
from .checklist_item import ChecklistItem  # noqa: F401
from .custom_task import CustomTask  # noqa: F401
from .day_ledger import DayLedgerEntry  # noqa: F401
from .user import User  # noqa: F401

__all__ = [
	'ActivityRecord',
	'ChecklistItem',
	'CustomTask',
	'DayLedgerEntry',
	'User',
]
