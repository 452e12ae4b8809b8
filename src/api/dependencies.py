"""FastAPI dependency injection for services and settings."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header

from src.api.middleware.error_handler import APIError
from src.application.services.artifacts import ArtifactService
from src.application.services.builders import (
    build_artifact_service,
    build_ingestion_service,
)
from src.application.services.ingestion import IngestionService
from src.commons.settings.loader import get_settings as _load_settings
from src.commons.settings.models import Settings
from src.infrastructure.factory import (
    InfrastructureFactory,
    get_factory,
    reset_factory,
)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Application settings loaded from config files and environment.
    """
    return _load_settings()


def get_infrastructure_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> InfrastructureFactory:
    """Get infrastructure factory with all providers.

    Args:
        settings: Application settings.

    Returns:
        Configured infrastructure factory.
    """
    return get_factory(settings)


def get_ingestion_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> IngestionService:
    """Get the video submission service.

    Args:
        factory: Infrastructure factory.

    Returns:
        Configured ingestion service.
    """
    return build_ingestion_service(factory)


def get_artifact_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> ArtifactService:
    """Get the quiz answering and summary regeneration service."""
    return build_artifact_service(factory)


def get_user_id(
    x_user_id: Annotated[str | None, Header(description="Calling user")] = None,
) -> str:
    """Identify the caller from the X-User-Id header.

    Authentication happens upstream; this service only scopes data by user.
    """
    if not x_user_id or not x_user_id.strip():
        raise APIError(
            code="MISSING_USER",
            message="X-User-Id header is required",
            status_code=401,
        )
    return x_user_id.strip()


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]
FactoryDep = Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)]
IngestionServiceDep = Annotated[IngestionService, Depends(get_ingestion_service)]
ArtifactServiceDep = Annotated[ArtifactService, Depends(get_artifact_service)]
UserIdDep = Annotated[str, Depends(get_user_id)]


async def shutdown_services() -> None:
    """Shutdown all infrastructure services."""
    try:
        factory = get_factory()
        await factory.close_all()
    except ValueError:
        pass  # Factory not initialized
    finally:
        reset_factory()
        get_settings.cache_clear()
