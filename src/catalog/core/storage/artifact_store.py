"""Durable blob storage for media artifacts.

Artifacts are addressed by generated relative paths such as
``images/3f2c...e1.jpg``. A path is returned only after the bytes are fully
persisted.
"""

import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from src.catalog.core.errors import StorageFailure


class ArtifactStore(ABC):
    """Abstract interface for artifact storage backends."""

    @abstractmethod
    def write(self, namespace: str, data: bytes, extension: str) -> str:
        """Persist ``data`` under a fresh unique path in ``namespace`` and return the path.

        Raises:
            StorageFailure: If the artifact could not be written. Nothing is left behind.
        """

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Return the bytes stored at ``path``."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether an artifact exists at ``path``."""

    @abstractmethod
    def url_for(self, path: str) -> str:
        """Public URL for an artifact path."""

    @staticmethod
    def new_path(namespace: str, extension: str) -> str:
        return f"{namespace.strip('/')}/{uuid.uuid4().hex}.{extension.lstrip('.').lower()}"


class LocalArtifactStore(ArtifactStore):
    """Filesystem artifact store.

    Bytes go to a temporary file in the target directory which is then renamed
    into place, so readers never observe a partially written artifact.
    """

    def __init__(self, root: str | Path, public_url: str = ""):
        self._root = Path(root)
        self._public_url = public_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        resolved = (self._root / path).resolve()
        if not resolved.is_relative_to(self._root.resolve()):
            raise ValueError(f"Artifact path escapes storage root: {path}")
        return resolved

    def write(self, namespace: str, data: bytes, extension: str) -> str:
        path = self.new_path(namespace, extension)
        target = self._resolve(path)
        tmp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=target.parent, delete=False, suffix=".part") as tmp:
                tmp_name = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error(
                "Artifact write failed",
                namespace=namespace,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise StorageFailure(f"Could not write artifact in {namespace}: {e}") from e

        logger.debug("Artifact written", path=path, size=len(data))
        return path

    def read(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def url_for(self, path: str) -> str:
        return f"{self._public_url}/{path.lstrip('/')}"
