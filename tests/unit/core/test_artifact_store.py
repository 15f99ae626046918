"""Tests for the local filesystem artifact store."""

from unittest.mock import patch

import pytest

from src.catalog.core.errors import StorageFailure
from src.catalog.core.storage import ArtifactStore, LocalArtifactStore


class TestLocalArtifactStore:
    def test_write_then_read(self, artifact_store):
        path = artifact_store.write("images", b"bytes", "jpg")

        assert path.startswith("images/")
        assert path.endswith(".jpg")
        assert artifact_store.exists(path)
        assert artifact_store.read(path) == b"bytes"

    def test_no_temporary_files_remain(self, artifact_store):
        artifact_store.write("videos", b"clip", "mp4")

        leftovers = list(artifact_store.root.rglob("*.part"))
        assert leftovers == []

    def test_failed_rename_cleans_up(self, artifact_store):
        with patch("os.replace", side_effect=OSError("read-only filesystem")):
            with pytest.raises(StorageFailure):
                artifact_store.write("images", b"bytes", "jpg")

        assert [p for p in artifact_store.root.rglob("*") if p.is_file()] == []

    def test_url_for_joins_public_url(self, tmp_path):
        store = LocalArtifactStore(tmp_path, public_url="https://cdn.example.com/storage/")

        assert store.url_for("images/a.jpg") == "https://cdn.example.com/storage/images/a.jpg"

    def test_rejects_paths_outside_root(self, artifact_store):
        with pytest.raises(ValueError):
            artifact_store.read("../../etc/passwd")

    def test_new_path_is_unique(self):
        paths = {ArtifactStore.new_path("images", ".JPG") for _ in range(50)}

        assert len(paths) == 50
        assert all(p.startswith("images/") and p.endswith(".jpg") for p in paths)
