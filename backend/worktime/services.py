from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from zoneinfo import ZoneInfo

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Query, Session, joinedload

from .config import settings
from .models import OfflineTimeEntry, Team, User
from .online_minutes import OnlineMinutesProvider
from .pace import MonthlyPaceReport, calculate_monthly_pace
from .state import RuntimeState
from .utils import format_duration
from .workdays import month_bounds


LOCAL_TZ = ZoneInfo(settings.timezone)

RECENT_ENTRY_LIMIT = 5
CHART_DAYS = 7


def _now() -> dt.datetime:
    return dt.datetime.now(LOCAL_TZ)


def _entries_query(db: Session, user_id: Optional[int] = None, team_id: Optional[int] = None) -> Query:
    query = db.query(OfflineTimeEntry)
    if user_id is not None:
        query = query.filter(OfflineTimeEntry.user_id == user_id)
    if team_id is not None:
        query = query.filter(OfflineTimeEntry.team_id == team_id)
    return query


def sum_offline_minutes(
    db: Session,
    start: dt.date,
    end: dt.date,
    user_id: Optional[int] = None,
    team_id: Optional[int] = None,
) -> int:
    query = db.query(func.coalesce(func.sum(OfflineTimeEntry.duration_minutes), 0))
    if user_id is not None:
        query = query.filter(OfflineTimeEntry.user_id == user_id)
    if team_id is not None:
        query = query.filter(OfflineTimeEntry.team_id == team_id)
    total = query.filter(OfflineTimeEntry.date >= start, OfflineTimeEntry.date <= end).scalar()
    return int(total or 0)


def list_recent_entries(
    db: Session,
    user_id: Optional[int] = None,
    team_id: Optional[int] = None,
    limit: int = RECENT_ENTRY_LIMIT,
) -> List[OfflineTimeEntry]:
    return (
        _entries_query(db, user_id, team_id)
        .options(joinedload(OfflineTimeEntry.user))
        .order_by(OfflineTimeEntry.date.desc(), OfflineTimeEntry.start_time.desc(), OfflineTimeEntry.id.desc())
        .limit(limit)
        .all()
    )


def build_chart_data(
    db: Session,
    today: dt.date,
    user_id: Optional[int] = None,
    team_id: Optional[int] = None,
    days: int = CHART_DAYS,
) -> List[Dict[str, Any]]:
    first_day = today - dt.timedelta(days=days - 1)
    query = db.query(OfflineTimeEntry.date, func.sum(OfflineTimeEntry.duration_minutes))
    if user_id is not None:
        query = query.filter(OfflineTimeEntry.user_id == user_id)
    if team_id is not None:
        query = query.filter(OfflineTimeEntry.team_id == team_id)
    rows = (
        query.filter(OfflineTimeEntry.date >= first_day, OfflineTimeEntry.date <= today)
        .group_by(OfflineTimeEntry.date)
        .all()
    )
    totals = {row[0]: int(row[1] or 0) for row in rows}

    chart: List[Dict[str, Any]] = []
    for offset in range(days - 1, -1, -1):
        day = today - dt.timedelta(days=offset)
        minutes = totals.get(day, 0)
        chart.append(
            {
                "date": day.strftime("%b %d"),
                "full_date": day.isoformat(),
                "minutes": minutes,
                "hours": round(minutes / 60, 1),
            }
        )
    return chart


def build_admin_stats(db: Session, today: dt.date) -> Dict[str, int]:
    total_users = db.query(func.count(User.id)).scalar() or 0
    active_users_today = (
        db.query(func.count(func.distinct(OfflineTimeEntry.user_id)))
        .filter(OfflineTimeEntry.date == today)
        .scalar()
        or 0
    )
    return {"total_users": int(total_users), "active_users_today": int(active_users_today)}


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).one_or_none()


def _ensure_team(db: Session, team_id: Optional[int]) -> None:
    if team_id is None:
        return
    exists = db.query(Team.id).filter(Team.id == team_id).one_or_none()
    if not exists:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")


def monthly_pace_for_user(
    db: Session,
    user: User,
    state: RuntimeState,
    provider: OnlineMinutesProvider,
    now: Optional[dt.datetime] = None,
    team_id: Optional[int] = None,
) -> MonthlyPaceReport:
    now = now or _now()
    _ensure_team(db, team_id)
    start, end = month_bounds(now.date())
    offline_minutes = sum_offline_minutes(db, start, end, user_id=user.id, team_id=team_id)
    return calculate_monthly_pace(user, offline_minutes, now, provider, **state.pace_options())


def build_dashboard(
    db: Session,
    user: User,
    state: RuntimeState,
    provider: OnlineMinutesProvider,
    now: Optional[dt.datetime] = None,
    team_id: Optional[int] = None,
) -> Dict[str, Any]:
    now = now or _now()
    today = now.date()
    _ensure_team(db, team_id)

    # Admins see everyone's entries; the pace below stays personal.
    scope_user_id = None if user.is_admin else user.id
    month_start, month_end = month_bounds(today)
    today_minutes = sum_offline_minutes(db, today, today, user_id=scope_user_id, team_id=team_id)
    month_minutes = sum_offline_minutes(db, month_start, month_end, user_id=scope_user_id, team_id=team_id)

    admin_stats: Dict[str, int] = {}
    if user.is_admin:
        admin_stats = build_admin_stats(db, today)

    pace = monthly_pace_for_user(db, user, state, provider, now=now, team_id=team_id)

    return {
        "stats": {
            "today_minutes": today_minutes,
            "today_formatted": format_duration(today_minutes),
            "month_minutes": month_minutes,
            "month_formatted": format_duration(month_minutes),
        },
        "recent_entries": list_recent_entries(db, user_id=scope_user_id, team_id=team_id),
        "chart_data": build_chart_data(db, today, user_id=scope_user_id, team_id=team_id),
        "admin_stats": admin_stats,
        "is_admin": bool(user.is_admin),
        "monthly_pace": pace.to_dict(),
    }


def update_runtime_settings(db: Session, state: RuntimeState, updates: dict) -> dict:
    normalized = {key: value for key, value in updates.items() if value is not None}
    try:
        state.apply(normalized)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    state.persist(db, normalized)
    return state.snapshot()
