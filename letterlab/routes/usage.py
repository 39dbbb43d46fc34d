"""Usage routes — per-day token and draft counters."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from letterlab.auth import get_current_user_id
from letterlab.database import get_db
from letterlab.models import UsageRow, to_usage_row
from letterlab.services.usage import query_usage

router = APIRouter()

DEFAULT_RANGE_DAYS = 14


def _parse_day(value: Optional[str], name: str) -> Optional[date]:
    """Accept YYYY-MM-DD or a full ISO timestamp."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"invalid '{name}' date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


@router.get("/usage/daily", response_model=list[UsageRow])
def daily_usage(
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Daily usage rows for the caller, oldest first. Defaults to the last 14 days."""
    now = datetime.now(timezone.utc)
    end = _parse_day(to, "to") or now.date()
    start = _parse_day(from_, "from") or (now - timedelta(days=DEFAULT_RANGE_DAYS)).date()
    if start > end:
        raise HTTPException(status_code=400, detail="'from' must not be after 'to'")

    return [to_usage_row(row) for row in query_usage(db, user_id, start, end)]
