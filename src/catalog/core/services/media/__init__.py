"""Media ingestion pipeline."""

from .ingestion import IngestionWorker
from .models import IngestionResult, MediaPayload, PendingMedia
from .normalizer import IMAGES_NAMESPACE, VIDEOS_NAMESPACE, MediaNormalizer
from .queue import InMemoryMediaQueue, MediaQueue, QueuedMedia, TemporalMediaQueue

__all__ = [
    "IMAGES_NAMESPACE",
    "VIDEOS_NAMESPACE",
    "InMemoryMediaQueue",
    "IngestionResult",
    "IngestionWorker",
    "MediaNormalizer",
    "MediaPayload",
    "MediaQueue",
    "PendingMedia",
    "QueuedMedia",
    "TemporalMediaQueue",
]
