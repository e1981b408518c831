"""Append-only activity log.

The checklist core only ever writes here; reading back is limited to the
activity endpoint.
"""
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..models.activity import ActivityRecord
from ..models.db import Database
from ..utils import activity_to_dict


class ActivityLog:
    def __init__(self, database: Database):
        self.database = database

    def record(
        self,
        user_id: int,
        action: str,
        details: Optional[Dict[str, object]] = None,
        session: Optional[Session] = None,
    ) -> None:
        """Append one record; joins the caller's transaction when ``session`` is given."""
        entry = ActivityRecord(user_id=user_id, action=action, details=details or None)
        if session is not None:
            session.add(entry)
            return
        with self.database.session_scope(commit_on_success=True) as own_session:
            own_session.add(entry)

    def for_user(self, user_id: int, limit: int = 10) -> List[Dict[str, object]]:
        with self.database.session_scope() as session:
            records = (
                session.query(ActivityRecord)
                .filter(ActivityRecord.user_id == user_id)
                .order_by(ActivityRecord.timestamp.desc(), ActivityRecord.id.desc())
                .limit(limit)
                .all()
            )
            return [activity_to_dict(record) for record in records]
