"""Tests for image normalization and video storage."""

from io import BytesIO
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image, ImageFile

from src.catalog.core.errors import MediaRejected, StorageFailure
from src.catalog.core.services.media.normalizer import IMAGES_NAMESPACE, VIDEOS_NAMESPACE
from tests.fixtures.core import image_bytes


def _stored_files(artifact_store) -> list:
    if not artifact_store.root.exists():
        return []
    return [p for p in artifact_store.root.rglob("*") if p.is_file()]


class TestNormalizeImage:
    @pytest.mark.parametrize(
        ("fmt", "extension", "size"),
        [
            ("JPEG", "jpg", (1600, 1200)),
            ("JPEG", "jpeg", (300, 900)),
            ("PNG", "png", (40, 30)),
            ("WEBP", "webp", (800, 600)),
        ],
    )
    def test_produces_800x600_jpeg(self, normalizer, artifact_store, fmt, extension, size):
        path = normalizer.normalize_image(image_bytes(fmt, size=size), extension)

        assert path.startswith(f"{IMAGES_NAMESPACE}/")
        assert path.endswith(".jpg")
        with Image.open(BytesIO(artifact_store.read(path))) as stored:
            assert stored.format == "JPEG"
            assert stored.size == (800, 600)

    def test_extension_is_case_and_dot_insensitive(self, normalizer, png_bytes):
        path = normalizer.normalize_image(png_bytes, ".PNG")
        assert path.endswith(".jpg")

    def test_each_call_writes_a_new_artifact(self, normalizer, artifact_store, png_bytes):
        first = normalizer.normalize_image(png_bytes, "png")
        second = normalizer.normalize_image(png_bytes, "png")

        assert first != second
        assert artifact_store.exists(first)
        assert artifact_store.exists(second)

    @pytest.mark.parametrize("extension", ["gif", "bmp", "svg", "", "exe"])
    def test_rejects_unsupported_extension(self, normalizer, artifact_store, png_bytes, extension):
        with pytest.raises(MediaRejected) as exc_info:
            normalizer.normalize_image(png_bytes, extension)

        assert "unsupported" in exc_info.value.reason
        assert _stored_files(artifact_store) == []

    @pytest.mark.parametrize(
        ("payload", "extension"),
        [
            (b"", "png"),
            (b"not an image at all", "png"),
            (image_bytes("JPEG")[:600], "jpg"),
        ],
        ids=["empty", "garbage", "truncated"],
    )
    def test_rejects_undecodable_payload(self, normalizer, artifact_store, payload, extension):
        with pytest.raises(MediaRejected) as exc_info:
            normalizer.normalize_image(payload, extension)

        assert "corrupt" in exc_info.value.reason
        assert _stored_files(artifact_store) == []

    def test_multi_picture_jpeg_is_accepted(self, normalizer, artifact_store):
        buffer = BytesIO()
        frames = [Image.new("RGB", (1024, 768), color) for color in ((10, 20, 30), (30, 20, 10))]
        frames[0].save(buffer, format="MPO", save_all=True, append_images=frames[1:])
        with Image.open(BytesIO(buffer.getvalue())) as decoded:
            assert decoded.format == "MPO"

        path = normalizer.normalize_image(buffer.getvalue(), "jpg")

        with Image.open(BytesIO(artifact_store.read(path))) as stored:
            assert stored.format == "JPEG"
            assert stored.size == (800, 600)

    def test_image_is_closed_when_pixels_fail_to_load(self, normalizer, artifact_store, png_bytes):
        opened = []
        real_open = Image.open

        def tracking_open(*args, **kwargs):
            image = real_open(*args, **kwargs)
            image.close = MagicMock(wraps=image.close)
            opened.append(image)
            return image

        with (
            patch("src.catalog.core.services.media.normalizer.Image.open", side_effect=tracking_open),
            patch.object(ImageFile.ImageFile, "load", side_effect=OSError("truncated")),
        ):
            with pytest.raises(MediaRejected, match="corrupt"):
                normalizer.normalize_image(png_bytes, "png")

        assert len(opened) == 2
        opened[-1].close.assert_called()
        assert _stored_files(artifact_store) == []

    def test_rejects_format_that_does_not_match_extension(self, normalizer, artifact_store, png_bytes):
        with pytest.raises(MediaRejected):
            normalizer.normalize_image(png_bytes, "jpg")

        assert _stored_files(artifact_store) == []

    def test_storage_failure_leaves_no_artifact(self, normalizer, artifact_store, png_bytes):
        with patch("tempfile.NamedTemporaryFile", side_effect=OSError("disk full")):
            with pytest.raises(StorageFailure):
                normalizer.normalize_image(png_bytes, "png")

        assert _stored_files(artifact_store) == []

    def test_frame_comes_from_config(self, artifact_store, png_bytes):
        from src.catalog.core.services.media.normalizer import MediaNormalizer
        from src.catalog.runtime.config.config_data import MediaConfig

        normalizer = MediaNormalizer(artifact_store, MediaConfig(image_width=64, image_height=48))
        path = normalizer.normalize_image(png_bytes, "png")

        with Image.open(BytesIO(artifact_store.read(path))) as stored:
            assert stored.size == (64, 48)


class TestStoreVideo:
    def test_stores_payload_verbatim(self, normalizer, artifact_store):
        payload = b"\x00\x00\x00\x18ftypmp42fake-video-bytes"

        path = normalizer.store_video(payload, "MP4")

        assert path.startswith(f"{VIDEOS_NAMESPACE}/")
        assert path.endswith(".mp4")
        assert artifact_store.read(path) == payload

    @pytest.mark.parametrize("extension", ["mkv", "flv", "gif", ""])
    def test_rejects_unsupported_extension(self, normalizer, artifact_store, extension):
        with pytest.raises(MediaRejected):
            normalizer.store_video(b"video", extension)

        assert _stored_files(artifact_store) == []

    def test_rejects_empty_payload(self, normalizer, artifact_store):
        with pytest.raises(MediaRejected):
            normalizer.store_video(b"", "mp4")

        assert _stored_files(artifact_store) == []
