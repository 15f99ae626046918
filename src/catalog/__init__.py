"""Product catalog backend.

This package contains the catalog core (media ingestion and cache-aside reads),
its persistence and infrastructure services, the Temporal worker that runs media
ingestion jobs, and the FastAPI adapter in front of it.
"""

__version__ = "0.1.0"
