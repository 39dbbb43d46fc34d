"""Per-user, per-day usage counters."""
import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from letterlab.models_db import Usage, new_id, utcnow

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def utc_day(when: datetime | date) -> date:
    """Normalise a timestamp to its UTC calendar day (naive values are UTC)."""
    if isinstance(when, datetime):
        if when.tzinfo is not None:
            when = when.astimezone(timezone.utc)
        return when.date()
    return when


def upsert_usage(
    db: Session,
    user_id: str,
    when: datetime | date,
    daily_tokens: int = 0,
    emails_drafted: int = 0,
) -> Usage:
    """Add the deltas to the (user, day) row, creating it if absent.

    Runs as one INSERT ... ON CONFLICT DO UPDATE so concurrent callers can
    only ever add to each other's counts.
    """
    if daily_tokens < 0 or emails_drafted < 0:
        raise ValueError("Usage deltas must be non-negative")

    day = utc_day(when)
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Atomic usage upsert is not supported on {dialect}")

    now = utcnow()
    stmt = insert(Usage).values(
        id=new_id(),
        user_id=user_id,
        date=day,
        daily_tokens=daily_tokens,
        emails_drafted=emails_drafted,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "date"],
        set_={
            "daily_tokens": Usage.daily_tokens + stmt.excluded.daily_tokens,
            "emails_drafted": Usage.emails_drafted + stmt.excluded.emails_drafted,
            "updated_at": now,
        },
    )
    db.execute(stmt)
    db.commit()

    row = db.scalars(
        select(Usage)
        .where(Usage.user_id == user_id, Usage.date == day)
        .execution_options(populate_existing=True)
    ).one()
    logger.debug(
        "Usage for %s on %s: tokens=%d emails=%d",
        user_id, day, row.daily_tokens, row.emails_drafted,
    )
    return row


def query_usage(
    db: Session,
    user_id: str,
    start: datetime | date,
    end: Optional[datetime | date] = None,
) -> list[Usage]:
    """Rows for start <= day <= end (both inclusive), oldest first."""
    end_day = utc_day(end) if end is not None else utc_day(datetime.now(timezone.utc))
    query = (
        select(Usage)
        .where(
            Usage.user_id == user_id,
            Usage.date >= utc_day(start),
            Usage.date <= end_day,
        )
        .order_by(Usage.date.asc())
    )
    return list(db.scalars(query))
