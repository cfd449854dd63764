"""Test fixtures for the backend."""
import os
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_trustpass.db")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="trustpass-uploads-")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["MAIL_FROM"] = "alerts@example.com"
os.environ["ADMIN_NOTIFICATION_EMAILS"] = "ops@example.com,hr@example.com"

from trustpass import models  # noqa: E402
from trustpass.config import get_settings  # noqa: E402
from trustpass.database import AsyncSessionLocal, engine  # noqa: E402
from trustpass.dependencies import get_mailer  # noqa: E402
from trustpass.main import app  # noqa: E402
from trustpass.services.mailer import Mailer  # noqa: E402


test_db_path = Path("test_trustpass.db")


class FakeMailer(Mailer):
    """Records every send instead of talking to SMTP."""

    def __init__(self) -> None:
        self.succeed = True
        self.sent: list[dict] = []

    async def send(self, recipients, sender, subject, text, html) -> bool:
        self.sent.append(
            {
                "recipients": list(recipients),
                "sender": sender,
                "subject": subject,
                "text": text,
                "html": html,
            }
        )
        return self.succeed


@pytest_asyncio.fixture
async def prepare_database() -> None:
    """Create the database schema before each test and drop it afterwards."""

    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.drop_all)
    await engine.dispose()
    if test_db_path.exists():
        test_db_path.unlink()


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def mailer() -> FakeMailer:
    fake = FakeMailer()
    app.dependency_overrides[get_mailer] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_mailer, None)


@pytest_asyncio.fixture
async def session(prepare_database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(prepare_database, mailer) -> AsyncClient:
    """Provide an HTTP client for integration tests."""

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    """Bootstrap an administrator and return bearer auth headers."""

    credentials = {"email": "admin@example.com", "password": "correct-horse"}
    response = await client.post("/auth/bootstrap", json=credentials)
    assert response.status_code == 201
    login = await client.post("/auth/login", json=credentials)
    assert login.status_code == 200
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


@pytest.fixture
def make_employee(session):
    """Factory inserting employees straight into the database."""

    from datetime import datetime

    from trustpass.repository import EmployeeRepository

    counter = {"n": 0}

    async def factory(**overrides):
        counter["n"] += 1
        values = {
            "employee_code": f"MCS-2024-{counter['n']:03d}",
            "full_name": f"Employee {counter['n']}",
            "dbs_number": f"DBS{counter['n']:06d}",
            "start_date": datetime(2024, 1, 1),
        }
        values.update(overrides)
        return await EmployeeRepository(session).create(**values)

    return factory
