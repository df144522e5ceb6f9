from __future__ import annotations

import uuid
from types import SimpleNamespace
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from gymhub.core.security import create_access_token
from gymhub.db.base import Base
from gymhub.db.session import get_db
import gymhub.models  # noqa: F401
from gymhub.models.member import Member
from gymhub.models.organization import Organization
from gymhub.models.user import User


# ---------------------------------------------------------
# Engine: one SQLite file per test
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'gymhub-test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from gymhub.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------
# Data helpers
# ---------------------------------------------------------
class Factory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def user(self, email: Optional[str] = None, *, name: Optional[str] = None, is_active: bool = True) -> User:
        user = User(
            email=User.normalize_email(email or f"{uuid.uuid4().hex[:10]}@example.com"),
            name=name,
            is_active=is_active,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def organization(self, name: str = "Iron Temple", slug: Optional[str] = None) -> Organization:
        org = Organization(name=name, slug=slug or f"gym-{uuid.uuid4().hex[:8]}")
        self.db.add(org)
        await self.db.flush()
        return org

    async def member(self, organization: Organization, user: User, role: str) -> Member:
        m = Member(organization_id=organization.id, user_id=user.id, role=role)
        self.db.add(m)
        await self.db.flush()
        return m

    async def commit(self) -> None:
        await self.db.commit()

    @staticmethod
    def headers(user: User, active_organization: Optional[Organization] = None) -> dict:
        token = create_access_token(
            user.id,
            active_organization_id=active_organization.id if active_organization else None,
        )
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def factory(db) -> Factory:
    return Factory(db)


@pytest_asyncio.fixture()
async def gym(factory):
    """
    One gym with an owner, a trainer and a plain user, plus a second gym
    where only ``outsider`` is a member.
    """
    org = await factory.organization("Iron Temple")
    other_org = await factory.organization("Rival Gym")

    owner = await factory.user("owner@example.com", name="Olga Owner")
    trainer = await factory.user("trainer@example.com", name="Tomas Trainer")
    user = await factory.user("user@example.com", name="Uma User")
    outsider = await factory.user("outsider@example.com")

    await factory.member(org, owner, "OWNER")
    await factory.member(org, trainer, "TRAINER")
    await factory.member(org, user, "USER")
    await factory.member(other_org, outsider, "OWNER")
    await factory.member(other_org, trainer, "USER")
    await factory.commit()

    return SimpleNamespace(
        org=org,
        other_org=other_org,
        owner=owner,
        trainer=trainer,
        user=user,
        outsider=outsider,
        headers=factory.headers,
    )
