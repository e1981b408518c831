"""Identity collaborator: registration, authentication and lookup.

The checklist core only needs ``get_user_by_id`` to resolve the requesting
user; everything else here backs the auth routes.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from ..models.db import Database
from ..models.user import User
from .activity_service import ActivityLog
from .errors import ConflictError, ValidationError


def _require_text(value: Optional[object], field_label: str, max_length: int) -> str:
    text_value = value.strip() if isinstance(value, str) else ""
    if not text_value:
        raise ValidationError(f"{field_label} is required")
    if len(text_value) > max_length:
        raise ValidationError(f"{field_label} must be at most {max_length} characters")
    return text_value


class UserService:
    def __init__(self, database: Database, activity: ActivityLog):
        self.database = database
        self.activity = activity

    def create_user(
        self,
        username: str,
        email: str,
        password: Optional[str] = None,
        metadata: Optional[Dict[str, object]] = None,
        details: Optional[Dict[str, object]] = None,
    ) -> Dict[str, object]:
        username = _require_text(username, "Username", 50)
        email = _require_text(email, "Email", 255).lower()
        if "@" not in email:
            raise ValidationError("Email address is not valid")
        if metadata is not None and not isinstance(metadata, dict):
            raise ValidationError("metadata must be an object")

        with self.database.session_scope(commit_on_success=True) as session:
            existing = (
                session.query(User)
                .filter(or_(User.username == username, User.email == email))
                .first()
            )
            if existing:
                raise ConflictError("User already exists")

            user = User(
                username=username,
                email=email,
                password_hash=generate_password_hash(password) if password else None,
                profile=metadata,
            )
            session.add(user)
            try:
                session.flush()
            except IntegrityError as exc:
                # lost a race against a concurrent registration
                raise ConflictError("User already exists") from exc

            self.activity.record(user.id, "registered", details, session=session)
            logging.info("Registered user %s (id=%s)", username, user.id)
            return user.to_dict()

    def authenticate(self, username: str, password: str) -> Optional[Dict[str, object]]:
        """Return the user dict for valid credentials, None otherwise."""
        if not username or not password:
            return None
        with self.database.session_scope(commit_on_success=True) as session:
            user = session.query(User).filter_by(username=username).first()
            if not user:
                return None
            if not user.password_hash or not check_password_hash(user.password_hash, password):
                self.activity.record(user.id, "failed_login", {"reason": "invalid_password"}, session=session)
                return None
            user.last_login = datetime.now(timezone.utc)
            self.activity.record(user.id, "login", session=session)
            session.flush()
            return user.to_dict()

    def get_user_by_id(self, user_id: int) -> Optional[Dict[str, object]]:
        with self.database.session_scope() as session:
            user = session.get(User, user_id)
            return user.to_dict() if user else None

    def delete_user(self, user_id: int) -> bool:
        """Delete a user; ledger, items, tasks and activity go with it (ON DELETE CASCADE)."""
        with self.database.session_scope(commit_on_success=True) as session:
            result = session.execute(delete(User).where(User.id == user_id))
            deleted = result.rowcount > 0
        if deleted:
            logging.info("Deleted user id=%s", user_id)
        return deleted
