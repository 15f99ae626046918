"""Core services exports."""

# Database Service
from .database.db_session import DbSessionService

# Catalog
from .catalog_service import (
    CatalogService,
    CreateProductCommand,
    ListProductsQuery,
    UpdateProductCommand,
)

# Media ingestion
from .media.ingestion import IngestionWorker
from .media.normalizer import MediaNormalizer

# Infrastructure clients
from .redis_service import RedisService
from .temporal.temporal_client import TemporalClientService

__all__ = [
    # Catalog
    "CatalogService",
    "CreateProductCommand",
    "ListProductsQuery",
    "UpdateProductCommand",
    # Media ingestion
    "IngestionWorker",
    "MediaNormalizer",
    # Infrastructure clients
    "RedisService",
    "TemporalClientService",
    # Database Service
    "DbSessionService",
]
