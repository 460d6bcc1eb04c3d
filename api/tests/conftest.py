"""Shared test fixtures.

Every test gets its own in-memory SQLite database. StaticPool keeps the single
connection alive for the test; the two event hooks hand transaction control to
SQLAlchemy so SAVEPOINTs (used by booking admission) work under aiosqlite.
"""

from datetime import datetime, time

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studiobook.core.auth import create_access_token, hash_password
from studiobook.core.config import STUDIO_TZ
from studiobook.core.database import get_db
from studiobook.main import app
from studiobook.models import Base, Member, MemberPlan, ServiceMenu, Shift, Staff, User, UserRole

# Monday 2 March 2026, 10:00 studio time
NOW = datetime(2026, 3, 2, 10, 0, tzinfo=STUDIO_TZ)


@pytest.fixture
def now():
    return NOW


def _explicit_transactions(engine, begin="BEGIN"):
    @event.listens_for(engine.sync_engine, "connect")
    def _no_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql(begin)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _explicit_transactions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on separate connections to one SQLite file.

    BEGIN IMMEDIATE takes the write lock as each transaction opens, so a second
    session waits until the first commits, as it would on a Postgres row lock.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'studio.db'}", connect_args={"timeout": 15})
    _explicit_transactions(engine, begin="BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Studio data
# ---------------------------------------------------------------------------


async def _add_trainer(db, name, unit_price, hours=(time(10, 0), time(22, 0)), days=range(7), is_active=True):
    staff = Staff(name=name, unit_price=unit_price, is_active=is_active)
    db.add(staff)
    await db.flush()
    db.add_all(Shift(staff_id=staff.id, day_of_week=dow, start_time=hours[0], end_time=hours[1]) for dow in days)
    await db.flush()
    return staff


@pytest.fixture
def make_trainer(db):
    """Create an extra trainer: await make_trainer("Name", unit_price, hours=..., days=...)."""

    async def _make(name, unit_price, **kwargs):
        staff = await _add_trainer(db, name, unit_price, **kwargs)
        await db.commit()
        return staff

    return _make


@pytest.fixture
async def studio(db):
    """Two trainers working 10:00-22:00 every day, a 60-minute menu, and members.

    Returns a dict of the created rows. Committed so API tests see them too.
    """
    yuji = await _add_trainer(db, "Yuji", 6050)
    risa = await _add_trainer(db, "Risa", 4950)

    menu = ServiceMenu(name="Personal training 60", duration_minutes=60, price=6050)
    retired_menu = ServiceMenu(name="Old menu", duration_minutes=60, price=5000, is_active=False)
    db.add_all([menu, retired_menu])

    member_user = User(email="member@example.com", hashed_password=hash_password("member123"), name="Member")
    admin_user = User(
        email="admin@example.com", hashed_password=hash_password("admin123"), name="Admin", role=UserRole.ADMIN
    )
    db.add_all([member_user, admin_user])
    await db.flush()

    member = Member(
        name="Member",
        user_id=member_user.id,
        plan=MemberPlan.STANDARD,
        contracted_sessions=4,
        prepaid_balance=0,
    )
    prepaid = Member(
        name="Prepaid",
        plan=MemberPlan.DIGITAL_PREPAID,
        contracted_sessions=8,
        prepaid_balance=3000,
    )
    db.add_all([member, prepaid])
    await db.commit()

    return {
        "yuji": yuji,
        "risa": risa,
        "menu": menu,
        "retired_menu": retired_menu,
        "member": member,
        "prepaid": prepaid,
        "member_user": member_user,
        "admin_user": admin_user,
    }


@pytest.fixture
def member_headers(studio):
    token = create_access_token(studio["member_user"].id, UserRole.MEMBER.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(studio):
    token = create_access_token(studio["admin_user"].id, UserRole.ADMIN.value)
    return {"Authorization": f"Bearer {token}"}
