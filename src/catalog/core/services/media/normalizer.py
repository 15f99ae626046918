"""Media normalization: turn uploaded media into stored artifacts.

Images are decoded, validated, stretched to a fixed frame and re-encoded as
JPEG. Videos are stored verbatim. The normalizer writes at most one artifact per
call and never touches product records.
"""

from io import BytesIO

from loguru import logger
from PIL import Image, UnidentifiedImageError

from src.catalog.core.errors import MediaRejected
from src.catalog.core.storage.artifact_store import ArtifactStore
from src.catalog.runtime.config.config_data import MediaConfig

IMAGES_NAMESPACE = "images"
VIDEOS_NAMESPACE = "videos"

# Pillow format names accepted for each extension; cameras write multi-picture JPEGs as MPO
_JPEG_FORMATS = frozenset({"JPEG", "MPO"})
_IMAGE_FORMATS = {
    "jpg": _JPEG_FORMATS,
    "jpeg": _JPEG_FORMATS,
    "png": frozenset({"PNG"}),
    "webp": frozenset({"WEBP"}),
}

_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)


class MediaNormalizer:
    def __init__(self, artifact_store: ArtifactStore, config: MediaConfig | None = None):
        self._store = artifact_store
        self._config = config or MediaConfig()

    @property
    def frame(self) -> tuple[int, int]:
        return self._config.image_width, self._config.image_height

    def normalize_image(self, content: bytes, extension: str) -> str:
        """Resize an image to the configured frame and store it as JPEG.

        The image is stretched to exactly ``frame``; aspect ratio is not kept and
        nothing is cropped.

        Returns:
            The artifact path of the re-encoded image.

        Raises:
            MediaRejected: Unsupported extension or undecodable payload.
            StorageFailure: The artifact could not be written.
        """
        extension = extension.lstrip(".").lower()
        expected_formats = _IMAGE_FORMATS.get(extension)
        if expected_formats is None or extension not in self._config.allowed_image_extensions:
            raise MediaRejected(f"unsupported image format: {extension or '<none>'}")

        encoded = self._encode_jpeg(self._decode(content, expected_formats))
        path = self._store.write(IMAGES_NAMESPACE, encoded, "jpg")
        logger.info("Image normalized", path=path, size=len(encoded))
        return path

    def store_video(self, content: bytes, extension: str) -> str:
        """Store a video verbatim and return its artifact path."""
        extension = extension.lstrip(".").lower()
        if extension not in self._config.allowed_video_extensions:
            raise MediaRejected(f"unsupported video format: {extension or '<none>'}")
        if not content:
            raise MediaRejected("corrupt payload: empty video")

        path = self._store.write(VIDEOS_NAMESPACE, content, extension)
        logger.info("Video stored", path=path, size=len(content))
        return path

    def _decode(self, content: bytes, expected_formats: frozenset[str]) -> Image.Image:
        if not content:
            raise MediaRejected("corrupt payload: empty image")
        try:
            with Image.open(BytesIO(content)) as header:
                actual_format = header.format
                header.verify()
        except _DECODE_ERRORS as e:
            raise MediaRejected(f"corrupt payload: {e}") from e

        if actual_format not in expected_formats:
            declared = "/".join(sorted(expected_formats))
            raise MediaRejected(f"corrupt payload: declared {declared} but decoded {actual_format}")

        # verify() leaves the image unusable, so decode again for pixels
        image = Image.open(BytesIO(content))
        try:
            image.load()
        except _DECODE_ERRORS as e:
            image.close()
            raise MediaRejected(f"corrupt payload: {e}") from e
        return image

    def _encode_jpeg(self, image: Image.Image) -> bytes:
        with image:
            resized = image.convert("RGB").resize(self.frame, Image.Resampling.LANCZOS)
        buffer = BytesIO()
        resized.save(buffer, format="JPEG", quality=self._config.jpeg_quality)
        return buffer.getvalue()
