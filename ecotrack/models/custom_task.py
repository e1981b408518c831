from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from .base import Base


class CustomTask(Base):
    __tablename__ = 'custom_tasks'

    # autoincrement id doubles as creation order
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    action_id = Column(String(96), nullable=False)
    label = Column(String(120), nullable=False)
    active = Column(Boolean, nullable=False, default=True, server_default='1', index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index('idx_custom_tasks_user_action', 'user_id', 'action_id', unique=True),
    )

    def __repr__(self) -> str:
        return f"<CustomTask action_id={self.action_id} label={self.label!r} active={self.active}>"
