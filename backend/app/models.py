"""SQLAlchemy model for the message log."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

DIRECTION_IN = "in"
DIRECTION_OUT = "out"


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (CheckConstraint("direction IN ('in', 'out')", name="ck_messages_direction"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), index=True, nullable=False)
    direction = Column(String(3), nullable=False)
    # Column is named "message" in the existing schema.
    text = Column("message", Text, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
