"""Shared API dependencies: database session, provider clients and services."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from modbot.checks import CheckRegistry, default_registry
from modbot.core.settings import settings
from modbot.db.session import get_db
from modbot.providers import Providers, build_providers
from modbot.repositories import ModerationRepository
from modbot.services import CacheService, ModerationService, WebhookIntake


class _ClientSingletons:
    """Process-wide provider clients and cache, created on first use."""

    providers: Providers | None = None
    cache: CacheService | None = None

    @classmethod
    def get_providers(cls) -> Providers:
        if cls.providers is None:
            cls.providers = build_providers(settings)
        return cls.providers

    @classmethod
    def get_cache(cls) -> CacheService:
        if cls.cache is None:
            cls.cache = CacheService(settings.redis_url)
        return cls.cache

    @classmethod
    async def close(cls) -> None:
        """Close open clients so the next use starts fresh."""
        if cls.providers is not None:
            await cls.providers.close()
            cls.providers = None
        if cls.cache is not None:
            await cls.cache.close()
            cls.cache = None


def get_providers() -> Providers:
    """Return the shared provider clients."""
    return _ClientSingletons.get_providers()


def get_cache() -> CacheService:
    """Return the shared cache service."""
    return _ClientSingletons.get_cache()


async def close_clients() -> None:
    await _ClientSingletons.close()


def get_registry() -> CheckRegistry:
    return default_registry


# Type aliases for dependency injection
SessionDep = Annotated[Session, Depends(get_db)]
ProvidersDep = Annotated[Providers, Depends(get_providers)]
CacheDep = Annotated[CacheService, Depends(get_cache)]
RegistryDep = Annotated[CheckRegistry, Depends(get_registry)]


def get_repository(db: SessionDep) -> ModerationRepository:
    return ModerationRepository(db)


RepositoryDep = Annotated[ModerationRepository, Depends(get_repository)]


def get_moderation_service(
    repository: RepositoryDep,
    providers: ProvidersDep,
    cache: CacheDep,
    registry: RegistryDep,
) -> ModerationService:
    """Build a moderation service bound to the request's session."""
    return ModerationService(repository, providers, cache, registry=registry)


ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]


def get_intake(
    repository: RepositoryDep,
    moderation: ModerationServiceDep,
    providers: ProvidersDep,
    cache: CacheDep,
) -> WebhookIntake:
    return WebhookIntake(repository, moderation, providers, cache)


IntakeDep = Annotated[WebhookIntake, Depends(get_intake)]
