"""Request-scoped dependencies shared by the API routers."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..services.refresher import DashboardPoller
from ..store import DataStore


def get_store(db: Session = Depends(get_db)) -> DataStore:
    return DataStore(db)


def get_poller(request: Request) -> DashboardPoller:
    return request.app.state.dashboard_poller


def get_now() -> datetime:
    return datetime.now(timezone.utc)
