from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional, Union

from typing_extensions import Literal

from pydantic import BaseModel, ConfigDict, Field


class EntryUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str


class RecentEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: int
    team_id: Optional[int]
    date: dt.date
    start_time: Optional[dt.time]
    end_time: Optional[dt.time]
    duration_minutes: int
    description: Optional[str]
    user: EntryUser


class DashboardStats(BaseModel):
    today_minutes: int
    today_formatted: str
    month_minutes: int
    month_formatted: str


class ChartPoint(BaseModel):
    date: str
    full_date: dt.date
    minutes: int
    hours: float


class MonthlyPaceResponse(BaseModel):
    monthly_target_minutes: int
    monthly_target_formatted: str
    total_worked_minutes: int
    total_worked_formatted: str
    offline_minutes: int
    online_minutes: int
    remaining_minutes: int
    remaining_formatted: str
    remaining_working_days: int
    total_working_days: int
    required_daily_minutes: int
    required_daily_formatted: str
    status: Literal["completed", "missed", "behind", "on_track"]
    online_source_configured: bool


class DashboardResponse(BaseModel):
    stats: DashboardStats
    recent_entries: List[RecentEntryResponse]
    chart_data: List[ChartPoint]
    admin_stats: Dict[str, int] = Field(default_factory=dict)
    is_admin: bool
    monthly_pace: MonthlyPaceResponse


class SettingsResponse(BaseModel):
    environment: str
    timezone: str
    target_hours_per_working_day: float
    excluded_weekday: str
    behind_threshold_minutes: int
    online_cache_ttl_seconds: int


class SettingsUpdateRequest(BaseModel):
    target_hours_per_working_day: Optional[float] = Field(default=None, ge=0, le=24)
    excluded_weekday: Optional[Union[int, str]] = None
    behind_threshold_minutes: Optional[int] = Field(default=None, ge=0, le=24 * 60)
