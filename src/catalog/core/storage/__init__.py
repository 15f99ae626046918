"""Cache and artifact storage abstractions."""

from .artifact_store import ArtifactStore, LocalArtifactStore
from .cache import Cache, InMemoryCache, RedisCache, build_cache

__all__ = [
    "ArtifactStore",
    "Cache",
    "InMemoryCache",
    "LocalArtifactStore",
    "RedisCache",
    "build_cache",
]
