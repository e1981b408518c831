"""User-defined checklist actions.

Removal is a soft delete: the row is flagged inactive so past checklist
items still join to a label, but the task leaves the action catalog.
"""
import logging
import re
import secrets
import time
from typing import Dict, List

from sqlalchemy import update

from ..models.custom_task import CustomTask
from ..models.db import Database
from ..utils import task_to_dict
from .activity_service import ActivityLog
from .errors import ValidationError

MAX_LABEL_LENGTH = 120
_SLUG_MAX_LENGTH = 32
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(label: str) -> str:
    slug = _NON_ALNUM.sub("_", label.lower()).strip("_")[:_SLUG_MAX_LENGTH].rstrip("_")
    return slug or "task"


def generate_action_id(label: str) -> str:
    """``custom_<slug>_<ns timestamp hex><random hex>``; never equal to a built-in id."""
    return f"custom_{slugify(label)}_{time.time_ns():x}{secrets.token_hex(3)}"


def normalize_label(label) -> str:
    value = label.strip() if isinstance(label, str) else ""
    if not value:
        raise ValidationError("Task label cannot be empty")
    if len(value) > MAX_LABEL_LENGTH:
        raise ValidationError(f"Task label must be at most {MAX_LABEL_LENGTH} characters")
    return value


class TaskRegistry:
    def __init__(self, database: Database, activity: ActivityLog):
        self.database = database
        self.activity = activity

    def list_tasks(self, user_id: int) -> List[Dict[str, object]]:
        """Active tasks in creation order."""
        with self.database.session_scope() as session:
            tasks = (
                session.query(CustomTask)
                .filter(CustomTask.user_id == user_id, CustomTask.active.is_(True))
                .order_by(CustomTask.id)
                .all()
            )
            return [task_to_dict(task) for task in tasks]

    def add_task(self, user_id: int, label: str) -> Dict[str, object]:
        label = normalize_label(label)
        task = CustomTask(user_id=user_id, action_id=generate_action_id(label), label=label)
        with self.database.session_scope(commit_on_success=True) as session:
            session.add(task)
            session.flush()
            self.activity.record(
                user_id, "task_added", {"actionId": task.action_id, "label": label}, session=session
            )
            payload = task_to_dict(task)
        logging.info("User %s added custom task %s", user_id, payload["actionId"])
        return payload

    def remove_task(self, user_id: int, action_id: str) -> bool:
        """Deactivate the user's task; False when it is unknown, someone else's, or already removed."""
        if not action_id:
            return False
        with self.database.session_scope(commit_on_success=True) as session:
            result = session.execute(
                update(CustomTask)
                .where(
                    CustomTask.user_id == user_id,
                    CustomTask.action_id == action_id,
                    CustomTask.active.is_(True),
                )
                .values(active=False)
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount == 1
            if removed:
                self.activity.record(user_id, "task_removed", {"actionId": action_id}, session=session)
        if removed:
            logging.info("User %s removed custom task %s", user_id, action_id)
        return removed
