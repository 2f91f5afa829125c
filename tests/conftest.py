"""Test configuration."""
import os
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from alembic import command
from alembic.config import Config
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
DB_PATH = ROOT / "picallback_test.db"
TEST_SECRET = "test-pi-secret"

# --- Env defaults, before anything reads settings
os.environ.setdefault("DATABASE_URL", f"sqlite:///{DB_PATH}")
os.environ.setdefault("PI_CALLBACK_SECRET", TEST_SECRET)
os.environ.setdefault("APP_ENV", "test")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PROMETHEUS_ENABLED"] = "false"

from picallback.config import Settings  # noqa: E402
from picallback.main import create_app  # noqa: E402
from picallback.models import PaymentNotification  # noqa: E402
from picallback.services.pipeline import CallbackContext  # noqa: E402
from picallback.services.signature import compute_signature  # noqa: E402
from picallback.services.store import (  # noqa: E402
    NotificationStore,
    StoreOutcome,
    StoreResult,
)


def _run_migrations() -> None:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", os.environ["DATABASE_URL"])
    command.upgrade(cfg, "head")


# --- Fresh file database per session, schema built by Alembic only
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)
TestingSessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False
)

_run_migrations()


class RecordingStore:
    """In-memory stand-in for the notification store."""

    def __init__(self, result: StoreResult | None = None) -> None:
        self.result = result or StoreResult(StoreOutcome.OK)
        self.calls: list[dict[str, Any]] = []

    def upsert(self, transaction_id, status, raw, *, status_reported=True, memo=None) -> StoreResult:
        self.calls.append(
            {
                "transaction_id": transaction_id,
                "status": status,
                "raw": raw,
                "status_reported": status_reported,
                "memo": memo,
            }
        )
        return self.result

    def ping(self) -> str:
        return "ok"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store() -> Iterator[NotificationStore]:
    yield NotificationStore(TestingSessionLocal)
    with TestingSessionLocal() as session, session.begin():
        session.execute(delete(PaymentNotification))


@pytest.fixture
def db_sessionmaker() -> sessionmaker:
    return TestingSessionLocal


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        database_url=os.environ["DATABASE_URL"],
        pi_callback_secret=TEST_SECRET,
        RATE_LIMIT_ENABLED=False,
        PROMETHEUS_ENABLED=False,
        STATIC_DIR=str(ROOT / "static"),
        STORE_TIMEOUT_SECONDS=2.0,
    )


@pytest.fixture
def sign() -> Callable[..., str]:
    def _sign(body: bytes, secret: str = TEST_SECRET) -> str:
        return compute_signature(secret, body)

    return _sign


@pytest.fixture
def make_client(settings: Settings, store: NotificationStore):
    """Factory returning an AsyncClient over a fresh app with an injected context."""

    async def _factory(
        *,
        secret: str | None = TEST_SECRET,
        notification_store: Any = None,
        **overrides: Any,
    ) -> AsyncClient:
        app_settings = settings.model_copy(update={"pi_callback_secret": secret, **overrides})
        context = CallbackContext(
            secret=secret,
            store=notification_store if notification_store is not None else store,
            store_timeout_seconds=app_settings.STORE_TIMEOUT_SECONDS,
        )
        app = create_app(app_settings, context=context)
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _factory


@pytest.fixture
async def client(make_client) -> AsyncIterator[AsyncClient]:
    async with await make_client() as async_client:
        yield async_client
