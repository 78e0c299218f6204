"""Application factory and top-level wiring for ShopDesk.

Importing this module creates the tables, installs middleware and error
handlers, mounts the JSON routers and attaches the dashboard poller, whose
background task runs for the lifetime of the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.errors import register_exception_handlers
from .db.session import Base, SessionLocal, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the models registers their tables with the metadata.
from .models import customer as _customer  # noqa: F401
from .models import device as _device  # noqa: F401
from .models import gadget as _gadget  # noqa: F401
from .models import loan as _loan  # noqa: F401
from .models import sale as _sale  # noqa: F401
from .models import supplier as _supplier  # noqa: F401
from .models import warranty as _warranty  # noqa: F401
from .routers import api_dashboard, api_inventory, api_loans, api_sales, api_warranties
from .services.refresher import DashboardPoller

dashboard_poller = DashboardPoller(SessionLocal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.dashboard_poller.start()
    try:
        yield
    finally:
        await app.state.dashboard_poller.stop()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.state.dashboard_poller = dashboard_poller

Base.metadata.create_all(bind=engine)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)
if settings.ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)

app.include_router(api_inventory.router)
app.include_router(api_sales.router)
app.include_router(api_loans.router)
app.include_router(api_warranties.router)
app.include_router(api_dashboard.router)


__all__ = ["app", "dashboard_poller"]
