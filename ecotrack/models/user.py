from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from .base import Base

class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    # "metadata" is reserved on declarative classes
    profile = Column('metadata', JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)
    last_nudged_day = Column(String(10), nullable=True)  # YYYY-MM-DD, written by the nudge job only

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "metadata": self.profile,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }
