"""Background refresh of the dashboard view.

The poller keeps the most recent successful ``DashboardView`` in memory. A
failed cycle is logged and recorded in ``last_error`` while the previous
snapshot stays in place; the next tick simply tries again.

Usage:
    poller = DashboardPoller(SessionLocal)
    poller.start()  # inside a running event loop
    ...
    await poller.stop()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from sqlalchemy.orm import Session

from ..core.config import settings
from ..schemas.dashboard import DashboardView
from .dashboard import load_dashboard

logger = logging.getLogger("shopdesk.dashboard.poller")

Loader = Callable[[Callable[[], Session]], Awaitable[DashboardView]]


class DashboardPoller:
    """Periodically rebuilds the dashboard snapshot on an asyncio task."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        interval: float | None = None,
        loader: Loader = load_dashboard,
    ) -> None:
        self.session_factory = session_factory
        self.interval = settings.DASHBOARD_REFRESH_SECONDS if interval is None else interval
        self.loader = loader
        self.snapshot: DashboardView | None = None
        self.last_error: str | None = None
        self.last_attempt: datetime | None = None
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self.interval <= 0:
            logger.info("dashboard.poller.disabled")
            return
        if self.is_running:
            logger.warning("dashboard.poller.already_running")
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info("dashboard.poller.started", extra={"extra_data": {"interval": self.interval}})

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("dashboard.poller.stopped")
        self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_now(self) -> DashboardView | None:
        """Run one cycle immediately and return the (possibly unchanged) snapshot."""

        self.last_attempt = datetime.now(timezone.utc)
        try:
            view = await self.loader(self.session_factory)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.last_error = str(exc) or type(exc).__name__
            logger.exception("dashboard.refresh_failed")
            return self.snapshot
        return self.publish(view)

    def publish(self, view: DashboardView) -> DashboardView:
        self.snapshot = view
        self.last_error = None
        return view

    async def _run_loop(self) -> None:
        while True:
            await self.refresh_now()
            await asyncio.sleep(self.interval)


__all__ = ["DashboardPoller"]
