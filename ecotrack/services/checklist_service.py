"""Checklist facade used by the HTTP layer.

Built-in and custom actions share one tagged record shape
``{actionId, label, isCustom}``; the catalog is built-ins first, then the
user's custom tasks in creation order.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from ..daykeys import day_key
from .errors import NotFoundError, PreconditionError, ValidationError
from .item_store import ItemStore
from .ledger import DayLedger
from .task_registry import TaskRegistry

BUILTIN_ACTIONS = (
    {"actionId": "reusable_bottle", "label": "Used a reusable bottle"},
    {"actionId": "walk_transit", "label": "Walked / biked / transit instead of driving"},
    {"actionId": "meatless_meal", "label": "Had a meatless meal"},
    {"actionId": "no_single_use", "label": "Avoided single-use plastic today"},
    {"actionId": "lights_off", "label": "Turned off unused lights / unplugged"},
)

NOTHING_DONE_MESSAGE = "Pick at least one action to check in"
MAX_HISTORY_DAYS = 365


def merge_action_catalog(
    builtins: Iterable[Mapping[str, object]],
    custom_tasks: Iterable[Mapping[str, object]],
    done_map: Mapping[str, bool],
) -> List[Dict[str, object]]:
    catalog = []
    for action in builtins:
        catalog.append({
            "actionId": action["actionId"],
            "label": action["label"],
            "isCustom": False,
            "doneToday": bool(done_map.get(action["actionId"], False)),
        })
    for task in custom_tasks:
        catalog.append({
            "actionId": task["actionId"],
            "label": task["label"],
            "isCustom": True,
            "doneToday": bool(done_map.get(task["actionId"], False)),
        })
    return catalog


def summarize_progress(catalog: List[Dict[str, object]]) -> Dict[str, int]:
    total = len(catalog)
    done = sum(1 for action in catalog if action["doneToday"])
    pct = int(done * 100 / total + 0.5) if total else 0
    return {"done": done, "total": total, "pct": pct}


def checkin_message(result: Mapping[str, object]) -> str:
    if result.get("alreadyCheckedIn"):
        return "You already checked in today"
    if result["streak"] >= 3:
        return "Nice! Your streak is growing!"
    return "Check-in complete!"


class ChecklistService:
    def __init__(
        self,
        ledger: DayLedger,
        items: ItemStore,
        tasks: TaskRegistry,
        builtins: Iterable[Mapping[str, object]] = BUILTIN_ACTIONS,
    ):
        self.ledger = ledger
        self.items = items
        self.tasks = tasks
        self.builtins = tuple(builtins)

    def today(self) -> str:
        return day_key(self.ledger.clock(), self.ledger.tz)

    def _catalog(self, user_id: int, day: str) -> List[Dict[str, object]]:
        return merge_action_catalog(
            self.builtins,
            self.tasks.list_tasks(user_id),
            self.items.done_map(user_id, day),
        )

    def get_today_checklist(self, user_id: int) -> Dict[str, object]:
        now = self.ledger.clock()
        day = day_key(now, self.ledger.tz)
        self.ledger.ensure_day(user_id, day)
        entry = self.ledger.get_day(user_id, day)
        items = self.items.get_items(user_id, day)
        done_map = {item["actionId"]: item["done"] for item in items}
        actions = merge_action_catalog(self.builtins, self.tasks.list_tasks(user_id), done_map)
        return {
            "day": day,
            "checkedInToday": entry["checkedIn"],
            "streak": entry["streak"],
            "items": items,
            "actions": actions,
            "progress": summarize_progress(actions),
            "currentStreak": self.ledger.current_streak(user_id, now),
        }

    def action_catalog(self, user_id: int) -> Dict[str, object]:
        day = self.today()
        return {"day": day, "actions": self._catalog(user_id, day)}

    def _known_action_ids(self, user_id: int) -> set:
        known = {action["actionId"] for action in self.builtins}
        known.update(task["actionId"] for task in self.tasks.list_tasks(user_id))
        return known

    def toggle_item(self, user_id: int, action_id: Optional[str], done: object) -> Dict[str, object]:
        """Set today's done flag for one action.

        Allowed after check-in as well; such edits change the item rows only,
        the streak committed at check-in stays as it is.
        """
        if not isinstance(action_id, str) or not action_id.strip():
            raise ValidationError("actionId is required")
        if not isinstance(done, bool):
            raise ValidationError("done must be true or false")
        action_id = action_id.strip()
        if action_id not in self._known_action_ids(user_id):
            raise ValidationError(f"Unknown action {action_id!r}")

        day = self.today()
        self.items.set_item(user_id, day, action_id, done)
        entry = self.ledger.get_day(user_id, day)
        checked_in = bool(entry and entry["checkedIn"])
        return {
            "day": day,
            "actionId": action_id,
            "done": done,
            "checkedInToday": checked_in,
            "message": "Updated after check-in" if checked_in else "Saved",
        }

    def perform_check_in(self, user_id: int) -> Dict[str, object]:
        """Check in for today once at least one catalog action is done.

        A day that is already checked in reports its stored streak even if
        every item was unticked afterwards.
        """
        now = self.ledger.clock()
        day = day_key(now, self.ledger.tz)
        entry = self.ledger.get_day(user_id, day)
        already = bool(entry and entry["checkedIn"])
        # only actions still in the catalog count; removed tasks do not
        if not already and not any(action["doneToday"] for action in self._catalog(user_id, day)):
            raise PreconditionError(NOTHING_DONE_MESSAGE)
        result = self.ledger.check_in(user_id, now=now)
        return {**result, "message": checkin_message(result)}

    def history(self, user_id: int, limit: object = 30) -> List[Dict[str, object]]:
        try:
            limit = int(limit)
        except (TypeError, ValueError) as exc:
            raise ValidationError("limit must be an integer") from exc
        if limit < 1 or limit > MAX_HISTORY_DAYS:
            raise ValidationError(f"limit must be between 1 and {MAX_HISTORY_DAYS}")
        return self.ledger.history(user_id, limit)

    def list_tasks(self, user_id: int) -> List[Dict[str, object]]:
        return self.tasks.list_tasks(user_id)

    def add_task(self, user_id: int, label: Optional[str]) -> Dict[str, object]:
        return self.tasks.add_task(user_id, label)

    def remove_task(self, user_id: int, action_id: str) -> None:
        if not self.tasks.remove_task(user_id, action_id):
            raise NotFoundError("Task not found")
