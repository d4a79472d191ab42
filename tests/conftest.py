# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EXECUTE_ON_PROTOCOL", "true")

from modbot.api.v1 import dependencies as api_dependencies
from modbot.checks import CheckContext, CheckResult, default_registry
from modbot.db.session import Base
from modbot.db.session import get_db as app_get_session
from modbot.main import app as fastapi_app
from modbot.providers import Providers
from modbot.providers.neynar import NeynarClient
from modbot.providers.onchain import OnchainClient, SimplehashClient
from modbot.providers.reputation import (
    AirstackClient,
    BotOrNotClient,
    IcebreakerClient,
    OpenRankClient,
)
from modbot.providers.warpcast import WarpcastClient
from modbot.providers.webhook import RuleWebhookClient
from modbot.repositories import ModerationRepository
from modbot.schemas import Cast, ConditionRule, ModeratedChannelConfig, User
from modbot.services import CacheService

TEST_DB_URL = "sqlite://"
CHANNEL_OWNER_FID = 1


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def repository(db_session: Session) -> ModerationRepository:
    return ModerationRepository(db_session)


@pytest.fixture()
def providers() -> Providers:
    """Provider container whose clients are spec'd async mocks."""
    mocked = Providers(
        neynar=AsyncMock(spec=NeynarClient),
        warpcast=AsyncMock(spec=WarpcastClient),
        onchain=AsyncMock(spec=OnchainClient),
        simplehash=AsyncMock(spec=SimplehashClient),
        botornot=AsyncMock(spec=BotOrNotClient),
        airstack=AsyncMock(spec=AirstackClient),
        openrank=AsyncMock(spec=OpenRankClient),
        icebreaker=AsyncMock(spec=IcebreakerClient),
        webhooks=AsyncMock(spec=RuleWebhookClient),
    )
    mocked.warpcast.get_channel_owner.return_value = CHANNEL_OWNER_FID
    return mocked


@pytest.fixture()
def cache() -> CacheService:
    return CacheService()


@pytest.fixture()
def run_check(
    providers: Providers, cache: CacheService, repository: ModerationRepository
) -> Callable[..., Any]:
    """Invoke one built-in check by name with keyword args as rule args."""

    async def run(
        name: str,
        /,
        *,
        user: User | None = None,
        cast: Cast | None = None,
        channel: ModeratedChannelConfig | None = None,
        simulation: bool = False,
        **args: Any,
    ) -> CheckResult:
        ctx = CheckContext(
            channel=channel or make_channel(),
            user=user or make_user(),
            rule=ConditionRule(name=name, args=args),
            providers=providers,
            cache=cache,
            cast=cast,
            repository=repository,
            simulation=simulation,
        )
        return await default_registry.lookup(name)(ctx)

    return run


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def override_clients(app: FastAPI, providers: Providers, cache: CacheService) -> Iterator[None]:
    """Route API requests through the mocked providers and a local cache."""
    app.dependency_overrides[api_dependencies.get_providers] = lambda: providers
    app.dependency_overrides[api_dependencies.get_cache] = lambda: cache
    try:
        yield
    finally:
        app.dependency_overrides.pop(api_dependencies.get_providers, None)
        app.dependency_overrides.pop(api_dependencies.get_cache, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_user(fid: int = 100, username: str = "alice", **fields: Any) -> User:
    return User(fid=fid, username=username, pfp_url=f"https://img.test/{fid}.png", **fields)


def make_cast(text: str = "gm", *, author: User | None = None, **fields: Any) -> Cast:
    fields.setdefault("hash", "0xcast")
    return Cast(text=text, author=author or make_user(), **fields)


def condition(name: str, **args: Any) -> dict[str, Any]:
    return {"type": "CONDITION", "name": name, "args": args}


def logical(operation: str, *conditions: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "LOGICAL",
        "name": operation.lower(),
        "args": {},
        "operation": operation,
        "conditions": list(conditions),
    }


def make_channel(
    channel_id: str = "base",
    *,
    inclusion: dict[str, Any] | None = None,
    exclusion: dict[str, Any] | None = None,
    inclusion_actions: list[dict[str, Any]] | None = None,
    exclusion_actions: list[dict[str, Any]] | None = None,
    **fields: Any,
) -> ModeratedChannelConfig:
    data: dict[str, Any] = {
        "id": channel_id,
        "userId": str(CHANNEL_OWNER_FID),
        "excludeCohosts": False,
        "inclusionRuleSet": {
            "rule": inclusion or logical("OR"),
            "actions": inclusion_actions or [{"type": "like"}],
        },
        "exclusionRuleSet": {
            "rule": exclusion or logical("OR"),
            "actions": exclusion_actions or [{"type": "hideQuietly"}],
        },
    }
    data.update(fields)
    return ModeratedChannelConfig.model_validate(data)


@pytest.fixture()
def channel_factory() -> Callable[..., ModeratedChannelConfig]:
    return make_channel
