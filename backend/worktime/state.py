from __future__ import annotations

from threading import RLock
from typing import Any, Dict

from sqlalchemy.orm import Session

from .config import Settings
from .models import AppSetting
from .workdays import parse_weekday, weekday_name


PACE_SETTING_KEYS = (
    "target_hours_per_working_day",
    "excluded_weekday",
    "behind_threshold_minutes",
)


class RuntimeState:
    """Pace configuration that can be adjusted while the app is running."""

    def __init__(self, base_settings: Settings):
        self._lock = RLock()
        self.target_hours_per_working_day: float = float(base_settings.target_hours_per_working_day)
        self.excluded_weekday: int = parse_weekday(base_settings.excluded_weekday)
        self.behind_threshold_minutes: int = int(base_settings.behind_threshold_minutes)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "target_hours_per_working_day": self.target_hours_per_working_day,
                "excluded_weekday": weekday_name(self.excluded_weekday),
                "behind_threshold_minutes": self.behind_threshold_minutes,
            }

    def pace_options(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "target_hours_per_working_day": self.target_hours_per_working_day,
                "excluded_weekday": self.excluded_weekday,
                "behind_threshold_minutes": self.behind_threshold_minutes,
            }

    def apply(self, updates: Dict[str, Any]) -> None:
        # Validate everything before touching state so a bad payload changes nothing.
        target = updates.get("target_hours_per_working_day")
        weekday = updates.get("excluded_weekday")
        threshold = updates.get("behind_threshold_minutes")
        parsed_weekday = parse_weekday(weekday) if weekday is not None else None
        if target is not None and float(target) < 0:
            raise ValueError("target_hours_per_working_day must not be negative")
        if threshold is not None and int(threshold) < 0:
            raise ValueError("behind_threshold_minutes must not be negative")
        with self._lock:
            if target is not None:
                self.target_hours_per_working_day = float(target)
            if parsed_weekday is not None:
                self.excluded_weekday = parsed_weekday
            if threshold is not None:
                self.behind_threshold_minutes = int(threshold)

    def load_from_db(self, session: Session) -> None:
        records = session.query(AppSetting).filter(AppSetting.key.in_(PACE_SETTING_KEYS)).all()
        if not records:
            return
        decoded: Dict[str, Any] = {}
        for record in records:
            if not record.value:
                continue
            if record.key == "target_hours_per_working_day":
                decoded["target_hours_per_working_day"] = float(record.value)
            elif record.key == "excluded_weekday":
                decoded["excluded_weekday"] = record.value
            elif record.key == "behind_threshold_minutes":
                decoded["behind_threshold_minutes"] = int(record.value)
        if decoded:
            self.apply(decoded)

    def persist(self, session: Session, updates: Dict[str, Any]) -> None:
        current = self.snapshot()
        for key, value in updates.items():
            if key not in PACE_SETTING_KEYS or value is None:
                continue
            # Store the normalized value that apply() accepted.
            value = current[key]
            record = session.query(AppSetting).filter(AppSetting.key == key).one_or_none()
            if record:
                record.value = str(value)
            else:
                session.add(AppSetting(key=key, value=str(value)))
        session.commit()
