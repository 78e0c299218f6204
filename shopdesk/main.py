from prometheus_fastapi_instrumentator import Instrumentator

from shopdesk.core.config import settings
from shopdesk.core.logging import configure_logging
from . import app as shop_app

configure_logging()
app = shop_app
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app)


@app.get("/health")
async def health() -> dict[str, object]:
    poller = app.state.dashboard_poller
    return {
        "ok": True,
        "app": settings.APP_NAME,
        "dashboard_poller": poller.is_running,
        "dashboard_error": poller.last_error,
    }
