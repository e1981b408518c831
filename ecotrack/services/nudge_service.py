"""Daily reminder mails for users who have not checked in yet.

Reads ledger and user state and writes only ``users.last_nudged_day``; it
never checks anyone in or touches a streak.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

import requests
from sqlalchemy import and_, or_, update

from ..daykeys import day_key
from ..models.day_ledger import DayLedgerEntry
from ..models.db import Database
from ..models.user import User
from .ledger import DayLedger

NUDGE_SUBJECT = "Your eco checklist is waiting"

SendEmail = Callable[[str, str, str], None]


def compose_nudge(username: str, streak: int) -> str:
    if streak > 0:
        plural = "day" if streak == 1 else "days"
        hook = f"You're on a {streak} {plural} streak. Check in today to keep it alive."
    else:
        hook = "One small action today starts a new streak."
    return f"Hi {username},\n\nYou haven't checked in on your sustainability checklist yet. {hook}\n"


class NudgeService:
    def __init__(self, database: Database, ledger: DayLedger, send_email: Optional[SendEmail] = None):
        self.database = database
        self.ledger = ledger
        self.send_email = send_email

    def pending_users(self, day: str) -> List[Dict[str, object]]:
        """Users with an email who are not checked in on ``day`` and were not nudged on it."""
        with self.database.session_scope() as session:
            rows = (
                session.query(User.id, User.username, User.email)
                .outerjoin(
                    DayLedgerEntry,
                    and_(DayLedgerEntry.user_id == User.id, DayLedgerEntry.day == day),
                )
                .filter(
                    User.email.isnot(None),
                    or_(DayLedgerEntry.id.is_(None), DayLedgerEntry.checked_in.is_(False)),
                    or_(User.last_nudged_day.is_(None), User.last_nudged_day != day),
                )
                .order_by(User.id)
                .all()
            )
            return [{"id": row.id, "username": row.username, "email": row.email} for row in rows]

    def _mark_nudged(self, user_id: int, day: str) -> None:
        with self.database.session_scope(commit_on_success=True) as session:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(last_nudged_day=day)
                .execution_options(synchronize_session=False)
            )

    def send_nudges(self, now: Optional[datetime] = None, dry_run: bool = False) -> Dict[str, object]:
        now = now or self.ledger.clock()
        day = day_key(now, self.ledger.tz)
        users = self.pending_users(day)
        summary = {"day": day, "candidates": len(users), "sent": 0, "failed": 0}
        if dry_run:
            for user in users:
                logging.info("[dry-run] would nudge %s <%s>", user["username"], user["email"])
            return summary
        if self.send_email is None:
            raise RuntimeError("NudgeService needs a send_email callable to send mail")

        for user in users:
            streak = self.ledger.current_streak(user["id"], now)
            try:
                self.send_email(user["email"], NUDGE_SUBJECT, compose_nudge(user["username"], streak))
            except requests.RequestException as exc:
                # leave last_nudged_day alone so the next run retries this user
                logging.error("Nudge to %s failed: %s", user["email"], exc)
                summary["failed"] += 1
                continue
            self._mark_nudged(user["id"], day)
            summary["sent"] += 1
        logging.info("Nudges for %s: %s sent, %s failed", day, summary["sent"], summary["failed"])
        return summary
