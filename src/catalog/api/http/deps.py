"""FastAPI dependency implementations."""

from __future__ import annotations

from fastapi import Request

from src.catalog.api.http.app_data import ApplicationDependencies
from src.catalog.core.services import (
    CatalogService,
    DbSessionService,
    RedisService,
    TemporalClientService,
)
from src.catalog.core.storage import ArtifactStore


def _app_deps(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_database_service(request: Request) -> DbSessionService:
    """Get the database service instance."""
    return _app_deps(request).database_service


def get_catalog_service(request: Request) -> CatalogService:
    """Get the catalog service instance."""
    return _app_deps(request).catalog_service


def get_artifact_store(request: Request) -> ArtifactStore:
    """Get the artifact store used to build media URLs."""
    return _app_deps(request).artifact_store


def get_temporal_service(request: Request) -> TemporalClientService:
    """Get the Temporal Client service instance."""
    return _app_deps(request).temporal_service


def get_redis_service(request: Request) -> RedisService:
    """Get the Redis service instance."""
    return _app_deps(request).redis_service
