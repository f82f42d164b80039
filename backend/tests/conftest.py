from __future__ import annotations

import os
import tempfile

os.environ.setdefault("APP_SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault(
    "DATABASE_URL_OVERRIDE",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.mkdtemp(prefix='ple-tests-'), 'app.db')}",
)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from ple_platform.core.database import Base  # noqa: E402
from ple_platform.core.security import hash_password  # noqa: E402
from ple_platform.models import User, UserRole  # noqa: E402
from ple_platform.services.content_service import ContentService  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'content.db'}")

    # The sqlite driver's implicit BEGIN breaks SAVEPOINT; emit it ourselves.
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_connect(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _sqlite_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(db) -> ContentService:
    return ContentService(db)


@pytest_asyncio.fixture
async def users(session_factory) -> dict[str, User]:
    accounts = {
        "author": User(email="author@example.com", display_name="Author", role=UserRole.member),
        "member": User(email="member@example.com", display_name="Member", role=UserRole.member),
        "editor": User(email="editor@example.com", display_name="Editor", role=UserRole.editor),
        "admin": User(email="admin@example.com", display_name="Admin", role=UserRole.admin),
    }
    async with session_factory() as session:
        for user in accounts.values():
            user.hashed_password = _PASSWORD_HASH
            session.add(user)
        await session.commit()
    return accounts
