"""Per (user, day, action) done flags."""
from typing import Dict, List

from sqlalchemy.sql import func

from ..models.checklist_item import ChecklistItem
from ..models.db import Database, upsert
from ..utils import item_to_dict

ITEM_KEY = ("user_id", "day", "action_id")


class ItemStore:
    def __init__(self, database: Database):
        self.database = database

    def set_item(self, user_id: int, day: str, action_id: str, done: bool) -> None:
        """Idempotent upsert: afterwards the item has exactly ``done``, whatever was there before."""
        with self.database.session_scope(commit_on_success=True) as session:
            upsert(
                session,
                ChecklistItem,
                {"user_id": user_id, "day": day, "action_id": action_id, "done": bool(done)},
                ITEM_KEY,
                update_values={"done": bool(done), "updated_at": func.now()},
            )

    def get_items(self, user_id: int, day: str) -> List[Dict[str, object]]:
        with self.database.session_scope() as session:
            items = (
                session.query(ChecklistItem)
                .filter(ChecklistItem.user_id == user_id, ChecklistItem.day == day)
                .order_by(ChecklistItem.action_id)
                .all()
            )
            return [item_to_dict(item) for item in items]

    def done_map(self, user_id: int, day: str) -> Dict[str, bool]:
        return {item["actionId"]: item["done"] for item in self.get_items(user_id, day)}
