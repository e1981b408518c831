"""Day/streak ledger.

Each (user, day) row moves Absent -> Pending -> Checked-in. The check-in
transition freezes that day's streak: yesterday's streak + 1 when yesterday
was checked in, otherwise 1.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..daykeys import day_key, parse_day, previous_day, yesterday
from ..models.day_ledger import DayLedgerEntry
from ..models.db import Database, insert_ignore
from ..utils import ledger_to_dict
from .activity_service import ActivityLog


def _checkin_payload(day: str, streak: int, already: bool) -> Dict[str, object]:
    return {
        "day": day,
        "streak": streak,
        "checkedInToday": True,
        "alreadyCheckedIn": already,
    }


class DayLedger:
    def __init__(
        self,
        database: Database,
        activity: ActivityLog,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.database = database
        self.activity = activity
        self.tz = tz
        self.clock = clock

    @staticmethod
    def _fetch(session: Session, user_id: int, day: str) -> Optional[DayLedgerEntry]:
        return (
            session.query(DayLedgerEntry)
            .filter(DayLedgerEntry.user_id == user_id, DayLedgerEntry.day == day)
            .first()
        )

    def ensure_day(self, user_id: int, day: str) -> None:
        """Absent -> Pending; a no-op for rows that already exist, checked in or not."""
        parse_day(day)
        with self.database.session_scope(commit_on_success=True) as session:
            insert_ignore(
                session,
                DayLedgerEntry,
                {"user_id": user_id, "day": day, "checked_in": False, "streak": 0},
            )

    def get_day(self, user_id: int, day: str) -> Optional[Dict[str, object]]:
        with self.database.session_scope() as session:
            entry = self._fetch(session, user_id, day)
            return ledger_to_dict(entry) if entry else None

    def check_in(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, object]:
        """Check the user in for today's local day.

        Idempotent: a second call on the same day returns the stored streak
        unchanged. The Pending -> Checked-in write is a single conditional
        UPDATE, so of two concurrent calls only one increments; the other
        reports the winner's row.
        """
        now = now or self.clock()
        today = day_key(now, self.tz)
        prior_day = yesterday(now, self.tz)

        # committed on its own: a failed check-in leaves today Pending, not Absent
        self.ensure_day(user_id, today)

        with self.database.session_scope(commit_on_success=True) as session:
            entry = self._fetch(session, user_id, today)
            if entry.checked_in:
                return _checkin_payload(today, entry.streak, already=True)

            prior = self._fetch(session, user_id, prior_day)
            base_streak = prior.streak if prior is not None and prior.checked_in else 0
            new_streak = base_streak + 1

            result = session.execute(
                update(DayLedgerEntry)
                .where(
                    DayLedgerEntry.user_id == user_id,
                    DayLedgerEntry.day == today,
                    DayLedgerEntry.checked_in.is_(False),
                )
                .values(checked_in=True, streak=new_streak, checked_in_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            won = result.rowcount == 1
            if won:
                self.activity.record(
                    user_id, "checkin", {"day": today, "streak": new_streak}, session=session
                )

        if not won:
            # a concurrent request checked in first; report its committed row
            current = self.get_day(user_id, today)
            logging.info("Concurrent check-in for user %s on %s, keeping streak %s",
                         user_id, today, current["streak"])
            return _checkin_payload(today, current["streak"], already=True)

        logging.info("User %s checked in on %s, streak %s", user_id, today, new_streak)
        return _checkin_payload(today, new_streak, already=False)

    def current_streak(self, user_id: int, now: Optional[datetime] = None) -> int:
        """Live streak: today's once checked in, otherwise the one still alive from yesterday."""
        now = now or self.clock()
        with self.database.session_scope() as session:
            today_entry = self._fetch(session, user_id, day_key(now, self.tz))
            if today_entry is not None and today_entry.checked_in:
                return today_entry.streak
            prior = self._fetch(session, user_id, yesterday(now, self.tz))
            if prior is not None and prior.checked_in:
                return prior.streak
            return 0

    def history(self, user_id: int, limit: int = 30) -> List[Dict[str, object]]:
        with self.database.session_scope() as session:
            entries = (
                session.query(DayLedgerEntry)
                .filter(DayLedgerEntry.user_id == user_id)
                .order_by(DayLedgerEntry.day.desc())
                .limit(limit)
                .all()
            )
            return [ledger_to_dict(entry) for entry in entries]

    def reconcile(self, user_id: int) -> int:
        """Rewrite checked-in streaks that break the consecutive-day chain.

        Maintenance only, never reachable from the API. Returns the number of
        rows corrected.
        """
        corrected = 0
        with self.database.session_scope(commit_on_success=True) as session:
            entries = (
                session.query(DayLedgerEntry)
                .filter(DayLedgerEntry.user_id == user_id, DayLedgerEntry.checked_in.is_(True))
                .order_by(DayLedgerEntry.day)
                .all()
            )
            last_day = None
            last_streak = 0
            for entry in entries:
                if last_day is not None and previous_day(entry.day) == last_day:
                    expected = last_streak + 1
                else:
                    expected = 1
                if entry.streak != expected:
                    logging.warning("Correcting streak for user %s on %s: %s -> %s",
                                    user_id, entry.day, entry.streak, expected)
                    entry.streak = expected
                    corrected += 1
                last_day, last_streak = entry.day, expected
            if corrected:
                self.activity.record(user_id, "streak_reconciled", {"corrected": corrected}, session=session)
        return corrected
