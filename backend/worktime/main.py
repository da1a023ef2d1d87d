from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .database import SessionLocal, engine, get_db
from .online_minutes import InMemoryTTLCache, OnlineMinutesProvider
from .schemas import DashboardResponse, MonthlyPaceResponse, SettingsResponse, SettingsUpdateRequest
from .services import build_dashboard, get_user, monthly_pace_for_user, update_runtime_settings
from .ssm_client import ScreenshotMonitorClient
from .state import RuntimeState

logger = logging.getLogger(__name__)


def build_online_minutes_provider() -> OnlineMinutesProvider:
    client = ScreenshotMonitorClient(
        base_url=settings.ssm_base_url,
        timeout=settings.ssm_timeout_seconds,
        verify_tls=settings.ssm_verify_tls,
    )
    cache = InMemoryTTLCache(max_entries=settings.online_cache_max_entries)
    return OnlineMinutesProvider(client, cache, ttl_seconds=settings.online_cache_ttl_seconds)


models.Base.metadata.create_all(bind=engine)

runtime_state = RuntimeState(settings)
with SessionLocal() as session:
    try:
        runtime_state.load_from_db(session)
    except ValueError as exc:
        logger.warning("Ignoring invalid stored pace settings: %s", exc)

app = FastAPI(title=settings.app_name)
app.state.runtime_state = runtime_state
app.state.online_minutes_provider = build_online_minutes_provider()


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db),
) -> models.User:
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user = get_user(db, x_user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    request: Request,
    team_id: Optional[int] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> DashboardResponse:
    state: RuntimeState = request.app.state.runtime_state
    provider: OnlineMinutesProvider = request.app.state.online_minutes_provider
    return build_dashboard(db, user, state, provider, team_id=team_id)


@app.get("/dashboard/pace", response_model=MonthlyPaceResponse)
def dashboard_pace(
    request: Request,
    team_id: Optional[int] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MonthlyPaceResponse:
    state: RuntimeState = request.app.state.runtime_state
    provider: OnlineMinutesProvider = request.app.state.online_minutes_provider
    report = monthly_pace_for_user(db, user, state, provider, team_id=team_id)
    return report.to_dict()


def _settings_response(snapshot: dict) -> SettingsResponse:
    return SettingsResponse(
        environment=settings.environment,
        timezone=settings.timezone,
        target_hours_per_working_day=snapshot["target_hours_per_working_day"],
        excluded_weekday=snapshot["excluded_weekday"],
        behind_threshold_minutes=snapshot["behind_threshold_minutes"],
        online_cache_ttl_seconds=settings.online_cache_ttl_seconds,
    )


@app.get("/settings", response_model=SettingsResponse)
def read_settings(request: Request) -> SettingsResponse:
    state: RuntimeState = request.app.state.runtime_state
    return _settings_response(state.snapshot())


@app.put("/settings", response_model=SettingsResponse)
def write_settings(payload: SettingsUpdateRequest, request: Request, db: Session = Depends(get_db)) -> SettingsResponse:
    state: RuntimeState = request.app.state.runtime_state
    updates = payload.model_dump(exclude_unset=True)
    snapshot = update_runtime_settings(db, state, updates)
    return _settings_response(snapshot)
