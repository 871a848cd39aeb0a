"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from main import create_app  # noqa: E402
from permit_tracker.core.config import Settings  # noqa: E402
from permit_tracker.core.database import init_models  # noqa: E402
from permit_tracker.models import ChecklistTemplateItem, County, PermitType  # noqa: E402
from permit_tracker.schemas.package import PackageCreate  # noqa: E402
from permit_tracker.services import lifecycle  # noqa: E402
from permit_tracker.services.collaboration import Connection  # noqa: E402

ADMIN_TOKEN = "admin-token"
ALICE_TOKEN = "alice-token"
BOB_TOKEN = "bob-token"

TOKENS = {
    ADMIN_TOKEN: {"user_id": "admin", "role": "ADMIN"},
    ALICE_TOKEN: {"user_id": "alice", "role": "USER"},
    BOB_TOKEN: {"user_id": "bob", "role": "USER"},
}

# (label, category, permit_type, required, sort_order)
MIAMI_DADE_TEMPLATES = [
    ("Building Permit Application", "Application", None, True, 1),
    ("Site Plan", "Plans", None, True, 2),
    ("Foundation Plans", "Plans", None, True, 3),
    ("Electrical Plans", "Plans", None, False, 4),
    ("Energy Code Compliance", "Compliance", None, True, 5),
    ("Wind Load Calculations", "Engineering", None, True, 6),
    ("Flood Zone Determination", "Site", None, False, 7),
    ("HUD Label Verification", "Mobile Home", PermitType.MOBILE_HOME, True, 8),
    ("Tie-Down System Certificate", "Mobile Home", PermitType.MOBILE_HOME, True, 9),
    ("Installer License", "Mobile Home", PermitType.MOBILE_HOME, False, 10),
    ("Truss Engineering", "Engineering", PermitType.RESIDENTIAL, True, 11),
]


def make_settings(db_path: Path, **overrides) -> Settings:
    """Settings pointing at a throwaway SQLite file with the test tokens."""
    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{db_path}",
        "API_TOKENS": TOKENS,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class RecordingConnection(Connection):
    """In-memory connection that records everything the hub sends it."""

    def __init__(self, connection_id: Optional[str] = None):
        super().__init__(connection_id)
        self.events: List[Tuple[str, dict]] = []
        self.closed: Optional[Tuple[int, Optional[str]]] = None
        self.broken = False

    async def send(self, event: str, data: dict) -> None:
        if self.broken:
            raise RuntimeError("socket is gone")
        self.events.append((event, data))

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.closed = (code, reason)

    def names(self) -> List[str]:
        return [event for event, _ in self.events]

    def of(self, event: str) -> List[dict]:
        return [data for name, data in self.events if name == event]


class RecordingNotifier:
    """Stands in for the hub when testing services directly."""

    def __init__(self):
        self.broadcasts: List[Tuple[str, str, dict]] = []

    async def broadcast(self, package_id: str, event: str, data: dict, exclude=None) -> int:
        self.broadcasts.append((package_id, event, data))
        return 1


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path / "permits.db")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def hub(app):
    return app.state.hub


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def connection_factory():
    return RecordingConnection


@pytest_asyncio.fixture
async def db(app):
    """Session on a freshly created schema."""
    await init_models(app.state.engine)
    async with app.state.session_factory() as session:
        yield session
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app, db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


@pytest_asyncio.fixture
async def miami_dade(db):
    """County with 7 generic, 3 mobile-home and 1 residential template."""
    county = County(name="Miami-Dade County", state="FL")
    db.add(county)
    await db.flush()
    for label, category, permit_type, required, sort_order in MIAMI_DADE_TEMPLATES:
        db.add(ChecklistTemplateItem(
            county_id=county.id,
            label=label,
            category=category,
            permit_type=permit_type,
            required=required,
            sort_order=sort_order,
        ))
    await db.commit()
    return county


@pytest_asyncio.fixture
async def mobile_home_package(db, miami_dade):
    """Mobile home package created by alice."""
    return await lifecycle.create_package(
        db,
        PackageCreate(
            title="Double wide install",
            permit_type=PermitType.MOBILE_HOME,
            customer_id="customer-1",
            county_id=miami_dade.id,
        ),
        "alice",
    )
