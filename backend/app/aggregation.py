"""Read-model aggregations over the message log.

Every function takes an open session and performs reads only. Results are
computed from the store on each call; nothing is cached.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import Select, case, distinct, func, select
from sqlalchemy.orm import Session

from . import schemas
from .models import DIRECTION_IN, DIRECTION_OUT, Message

SEARCH_RESULT_LIMIT = 100
WEEKLY_WINDOW_DAYS = 7


def _message_out(message: Message) -> schemas.MessageOut:
    return schemas.MessageOut(
        id=message.id,
        user_id=message.user_id,
        direction=message.direction,
        text=message.text,
        created_at=message.created_at,
    )


def _day_range(first: date, last: date) -> Tuple[datetime, datetime]:
    """Half-open [first 00:00, day after last 00:00) range covering whole days."""

    return datetime.combine(first, time.min), datetime.combine(last + timedelta(days=1), time.min)


def _as_date(value) -> date:
    # SQLite's DATE() yields ISO strings, MySQL yields date objects.
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def list_conversations(db: Session) -> List[schemas.ConversationSummary]:
    """Summarise each conversation by its most recent message.

    The latest row per user is picked with a window function ordered by
    ``created_at`` then ``id``, so a tie on time goes to the row inserted last
    and the text and direction always belong to the same row.
    """
    ranked = select(
        Message.id.label("id"),
        Message.user_id.label("user_id"),
        Message.text.label("text"),
        Message.direction.label("direction"),
        Message.created_at.label("created_at"),
        func.row_number()
        .over(
            partition_by=Message.user_id,
            order_by=(Message.created_at.desc(), Message.id.desc()),
        )
        .label("position"),
    ).subquery("ranked")

    stmt = (
        select(ranked.c.user_id, ranked.c.created_at, ranked.c.text, ranked.c.direction)
        .where(ranked.c.position == 1)
        .order_by(ranked.c.created_at.desc(), ranked.c.id.desc())
    )
    rows = db.execute(stmt).mappings().all()
    return [
        schemas.ConversationSummary(
            user_id=row["user_id"],
            last_message_time=row["created_at"],
            last_message_text=row["text"],
            last_message_direction=row["direction"],
        )
        for row in rows
    ]


def get_thread(db: Session, user_id: str) -> List[schemas.MessageOut]:
    stmt: Select = (
        select(Message)
        .where(Message.user_id == user_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return [_message_out(message) for message in db.execute(stmt).scalars().all()]


def search_messages(
    db: Session, query: Optional[str], limit: int = SEARCH_RESULT_LIMIT
) -> List[schemas.MessageOut]:
    """Case-insensitive substring search across every conversation, newest first."""

    if not query:
        return []

    stmt: Select = (
        select(Message)
        .where(Message.text.icontains(query, autoescape=True))
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
    )
    return [_message_out(message) for message in db.execute(stmt).scalars().all()]


def get_stats(db: Session, today: date) -> schemas.UsageStats:
    day_start, day_end = _day_range(today, today)
    stmt = select(
        func.count(Message.id).label("total"),
        func.count(distinct(Message.user_id)).label("users"),
        func.coalesce(func.sum(case((Message.direction == DIRECTION_IN, 1), else_=0)), 0).label("incoming"),
        func.coalesce(func.sum(case((Message.direction == DIRECTION_OUT, 1), else_=0)), 0).label("outgoing"),
        func.coalesce(
            func.sum(
                case(
                    ((Message.created_at >= day_start) & (Message.created_at < day_end), 1),
                    else_=0,
                )
            ),
            0,
        ).label("today"),
    )
    row = db.execute(stmt).mappings().one()
    return schemas.UsageStats(
        total_messages=int(row["total"]),
        total_users=int(row["users"]),
        incoming_messages=int(row["incoming"]),
        outgoing_messages=int(row["outgoing"]),
        today_messages=int(row["today"]),
    )


def get_weekly_stats(db: Session, today: date, days: int = WEEKLY_WINDOW_DAYS) -> List[schemas.WeeklyBucket]:
    """Per-day message counts for the trailing window ending today.

    Days without messages are returned with zero counts so the series is
    always ``days`` entries long, oldest first.
    """
    first_day = today - timedelta(days=days - 1)
    window_start, window_end = _day_range(first_day, today)

    day = func.date(Message.created_at).label("day")
    stmt = (
        select(
            day,
            func.count(Message.id).label("total"),
            func.sum(case((Message.direction == DIRECTION_IN, 1), else_=0)).label("incoming"),
            func.sum(case((Message.direction == DIRECTION_OUT, 1), else_=0)).label("outgoing"),
        )
        .where(Message.created_at >= window_start, Message.created_at < window_end)
        .group_by(day)
    )

    buckets: Dict[date, schemas.WeeklyBucket] = {
        first_day + timedelta(days=offset): schemas.WeeklyBucket(day=first_day + timedelta(days=offset))
        for offset in range(days)
    }
    for row in db.execute(stmt).mappings().all():
        bucket_day = _as_date(row["day"])
        if bucket_day not in buckets:
            continue
        buckets[bucket_day] = schemas.WeeklyBucket(
            day=bucket_day,
            total=int(row["total"]),
            incoming=int(row["incoming"] or 0),
            outgoing=int(row["outgoing"] or 0),
        )
    return [buckets[key] for key in sorted(buckets)]
