import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ["DATABASE_URL"] = "sqlite://"
# Calendar bucketing in the tests assumes East Africa Time (UTC+3, no DST).
os.environ["TZ"] = "Africa/Dar_es_Salaam"
os.environ["DASHBOARD_REFRESH_SECONDS"] = "0"

from shopdesk.db.session import Base

# Ensure models are imported so metadata is populated
from shopdesk.models import customer as customer_model  # noqa: F401,E402
from shopdesk.models import device as device_model  # noqa: F401,E402
from shopdesk.models import gadget as gadget_model  # noqa: F401,E402
from shopdesk.models import loan as loan_model  # noqa: F401,E402
from shopdesk.models import sale as sale_model  # noqa: F401,E402
from shopdesk.models import supplier as supplier_model  # noqa: F401,E402
from shopdesk.models import warranty as warranty_model  # noqa: F401,E402


@pytest.fixture()
def session_factory(tmp_path):
    # File-backed so sessions opened on worker threads share the same data.
    engine = create_engine(f"sqlite:///{tmp_path / 'shop.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
