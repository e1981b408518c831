from uuid import uuid4

from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Index, CheckConstraint

from .base import Base


class DayLedgerEntry(Base):
    """One user's checklist day: check-in flag plus the streak frozen at check-in."""

    __tablename__ = 'day_ledger'

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    day = Column(String(10), nullable=False)  # YYYY-MM-DD, local calendar day
    checked_in = Column(Boolean, nullable=False, default=False, server_default='0')
    streak = Column(Integer, nullable=False, default=0, server_default='0')
    checked_in_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_ledger_user_day', 'user_id', 'day', unique=True),
        CheckConstraint('streak >= 0', name='streak_non_negative'),
    )

    def __repr__(self) -> str:
        return f"<DayLedgerEntry user_id={self.user_id} day={self.day} checked_in={self.checked_in} streak={self.streak}>"
