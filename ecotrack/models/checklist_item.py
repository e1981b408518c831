from uuid import uuid4

from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from .base import Base


class ChecklistItem(Base):
    __tablename__ = 'checklist_items'

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    day = Column(String(10), nullable=False)
    action_id = Column(String(96), nullable=False)  # built-in id or a custom task's action_id
    done = Column(Boolean, nullable=False, default=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    __table_args__ = (
        Index('idx_items_user_day_action', 'user_id', 'day', 'action_id', unique=True),
    )
