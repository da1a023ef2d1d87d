"""Monthly pace: how much work per remaining day is needed to hit the target."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from .online_minutes import OnlineMinutesProvider, TimeSourceUser, has_online_source
from .utils import ceil_div, format_duration
from .workdays import FRIDAY, month_bounds, working_day_count

DEFAULT_TARGET_HOURS_PER_WORKING_DAY = 8
DEFAULT_BEHIND_THRESHOLD_MINUTES = 10 * 60


class PaceStatus(str, Enum):
    COMPLETED = "completed"
    MISSED = "missed"
    BEHIND = "behind"
    ON_TRACK = "on_track"


@dataclass(frozen=True, slots=True)
class MonthlyPaceReport:
    monthly_target_minutes: int
    total_worked_minutes: int
    offline_minutes: int
    online_minutes: int
    remaining_minutes: int
    remaining_working_days: int
    total_working_days: int
    required_daily_minutes: int
    status: PaceStatus
    online_source_configured: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthly_target_minutes": self.monthly_target_minutes,
            "monthly_target_formatted": format_duration(self.monthly_target_minutes),
            "total_worked_minutes": self.total_worked_minutes,
            "total_worked_formatted": format_duration(self.total_worked_minutes),
            "offline_minutes": self.offline_minutes,
            "online_minutes": self.online_minutes,
            "remaining_minutes": self.remaining_minutes,
            "remaining_formatted": format_duration(self.remaining_minutes),
            "remaining_working_days": self.remaining_working_days,
            "total_working_days": self.total_working_days,
            "required_daily_minutes": self.required_daily_minutes,
            "required_daily_formatted": format_duration(self.required_daily_minutes),
            "status": self.status.value,
            "online_source_configured": self.online_source_configured,
        }


def derive_status(
    remaining_minutes: int,
    remaining_working_days: int,
    required_daily_minutes: int,
    behind_threshold_minutes: int = DEFAULT_BEHIND_THRESHOLD_MINUTES,
) -> PaceStatus:
    if remaining_minutes <= 0:
        return PaceStatus.COMPLETED
    if remaining_working_days == 0:
        return PaceStatus.MISSED
    if required_daily_minutes > behind_threshold_minutes:
        return PaceStatus.BEHIND
    return PaceStatus.ON_TRACK


def calculate_monthly_pace(
    user: TimeSourceUser,
    offline_minutes: int,
    now: dt.datetime,
    provider: OnlineMinutesProvider,
    *,
    target_hours_per_working_day: float = DEFAULT_TARGET_HOURS_PER_WORKING_DAY,
    excluded_weekday: int = FRIDAY,
    behind_threshold_minutes: int = DEFAULT_BEHIND_THRESHOLD_MINUTES,
) -> MonthlyPaceReport:
    """Build the pace report for ``user`` in the month containing ``now``.

    ``offline_minutes`` is the user's locally recorded total for that month.
    Online minutes come from ``provider``, which degrades to zero when the
    remote source is unavailable.
    """
    if offline_minutes < 0:
        raise ValueError("offline_minutes must not be negative")

    today = now.date()
    start, end = month_bounds(today)

    total_working_days = working_day_count(start, end, excluded_weekday)
    monthly_target_minutes = int(round(total_working_days * target_hours_per_working_day * 60))

    online_minutes = provider.get_monthly_online_minutes(user, now)
    total_worked_minutes = offline_minutes + online_minutes
    remaining_minutes = max(0, monthly_target_minutes - total_worked_minutes)

    tomorrow = today + dt.timedelta(days=1)
    remaining_working_days = working_day_count(tomorrow, end, excluded_weekday) if tomorrow <= end else 0

    required_daily_minutes = (
        ceil_div(remaining_minutes, remaining_working_days) if remaining_working_days > 0 else 0
    )

    status = derive_status(
        remaining_minutes,
        remaining_working_days,
        required_daily_minutes,
        behind_threshold_minutes,
    )

    return MonthlyPaceReport(
        monthly_target_minutes=monthly_target_minutes,
        total_worked_minutes=total_worked_minutes,
        offline_minutes=offline_minutes,
        online_minutes=online_minutes,
        remaining_minutes=remaining_minutes,
        remaining_working_days=remaining_working_days,
        total_working_days=total_working_days,
        required_daily_minutes=required_daily_minutes,
        status=status,
        online_source_configured=has_online_source(user),
    )
