"""Pydantic models for the read-model responses."""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Direction(str, Enum):
    INCOMING = "in"
    OUTGOING = "out"


class _ResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MessageOut(_ResponseModel):
    id: int
    user_id: str = Field(..., alias="userId", description="Conversation partner identifier")
    direction: Direction = Field(..., description="'in' when received from the user, 'out' when sent")
    text: str
    created_at: datetime = Field(..., alias="createdAt")


class ConversationSummary(_ResponseModel):
    user_id: str = Field(..., alias="userId")
    last_message_time: datetime = Field(..., alias="lastMessageTime")
    last_message_text: str = Field(..., alias="lastMessageText")
    last_message_direction: Direction = Field(..., alias="lastMessageDirection")


class UsageStats(_ResponseModel):
    total_messages: int = Field(..., alias="totalMessages")
    total_users: int = Field(..., alias="totalUsers")
    incoming_messages: int = Field(..., alias="incomingMessages")
    outgoing_messages: int = Field(..., alias="outgoingMessages")
    today_messages: int = Field(..., alias="todayMessages", description="Messages created on the current calendar day")


class WeeklyBucket(_ResponseModel):
    day: date = Field(..., alias="date")
    total: int = 0
    incoming: int = 0
    outgoing: int = 0


class HealthOut(_ResponseModel):
    reachable: bool
    detail: Optional[str] = Field(default=None, description="Failure description when the store is unreachable")
