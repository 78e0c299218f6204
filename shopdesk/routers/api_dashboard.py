from __future__ import annotations

from fastapi import APIRouter, Depends

from ..db.session import get_session_factory
from ..deps import get_poller
from ..schemas.dashboard import DashboardView
from ..services.dashboard import load_dashboard
from ..services.refresher import DashboardPoller

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardView)
async def api_dashboard(
    poller: DashboardPoller = Depends(get_poller),
    session_factory=Depends(get_session_factory),
):
    # Without the background loop nothing refreshes the snapshot.
    if poller.is_running and poller.snapshot is not None:
        return poller.snapshot
    return poller.publish(await load_dashboard(session_factory))


@router.post("/refresh", response_model=DashboardView)
async def api_refresh_dashboard(
    poller: DashboardPoller = Depends(get_poller),
    session_factory=Depends(get_session_factory),
):
    # Unlike the background loop, a manual refresh reports failures to the caller.
    return poller.publish(await load_dashboard(session_factory))
