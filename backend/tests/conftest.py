"""
CodeSync - Test Configuration and Fixtures
"""
import os
import sys
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Callable, List, Dict, Any

import pytest
from faker import Faker

# Set testing environment before the app reads its settings
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="codesync-tests-"))
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{(_TEST_ROOT / 'test.db').as_posix()}"
os.environ['PROJECTS_ROOT'] = str(_TEST_ROOT / 'repos')
os.environ['SCRIPT_TEMP_DIR'] = str(_TEST_ROOT / 'scripts')
os.environ['SCRIPT_INTERPRETER'] = sys.executable
os.environ['LOG_FILE'] = str(_TEST_ROOT / 'logs' / 'test.log')

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import app.models  # noqa: F401 - register tables on the metadata
from app.core.database import drop_db, get_session_local, init_db
from app.main import app, create_sync_hub
from app.services.room_registry import Connection, RoomRegistry

fake = Faker()


class FakeWebSocket:
    """Records what the server sends; optionally fails like a dropped socket."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.accepted = False
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, message: Dict[str, Any]):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    def events(self) -> List[str]:
        return [m["type"] for m in self.sent]

    def of_type(self, event: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["type"] == event]

    def data(self, event: str) -> Dict[str, Any]:
        """Payload of the last message of type `event`"""
        return self.of_type(event)[-1]["data"]


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def make_connection(registry: RoomRegistry) -> Callable[..., Connection]:
    """Factory for registered connections backed by FakeWebSocket"""
    def _make(fail: bool = False) -> Connection:
        return registry.attach(Connection(websocket=FakeWebSocket(fail=fail)))
    return _make


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh tables for each test"""
    await init_db()

    yield get_session_local()

    await drop_db()


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app; lifespan does not run, so the hub is wired here"""
    app.state.sync_hub = create_sync_hub(session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    del app.state.sync_hub


@pytest.fixture
def user_email() -> str:
    return fake.email()


@pytest.fixture
def python() -> str:
    """Quoted interpreter path for shell command lines"""
    return f'"{sys.executable}"'


@pytest.fixture
def websocket() -> FakeWebSocket:
    """An unregistered socket, as handed over by the transport"""
    return FakeWebSocket()
