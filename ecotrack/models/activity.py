from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Index
from sqlalchemy.sql import func
from .base import Base


class ActivityRecord(Base):
    __tablename__ = 'user_activity'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(64), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    details = Column(JSON, nullable=True)

    __table_args__ = (
        Index('idx_user_activity_user_id', 'user_id'),
        Index('idx_user_activity_timestamp', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f"<ActivityRecord user_id={self.user_id} action={self.action!r}>"
