"""Ingestion job models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MediaPayload(BaseModel):
    """Raw uploaded media bytes and the extension the client declared."""

    # Raw bytes travel as base64 inside JSON job payloads
    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    content: bytes = Field(repr=False)
    extension: str

    @field_validator("extension")
    @classmethod
    def normalize_extension(cls, value: str) -> str:
        return value.strip().lstrip(".").lower()

    @property
    def size(self) -> int:
        return len(self.content)


class PendingMedia(BaseModel):
    """Deferred media work for one product.

    Owned by the ingestion worker for the duration of one job and never persisted.
    """

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    product_id: str
    image: MediaPayload | None = None
    video: MediaPayload | None = None

    @model_validator(mode="after")
    def require_media(self) -> "PendingMedia":
        if self.image is None and self.video is None:
            raise ValueError("PendingMedia needs an image or a video payload")
        return self


class IngestionResult(BaseModel):
    """Outcome of one ingestion job, used for logging and tests."""

    product_id: str
    image_path: str | None = None
    video_path: str | None = None
    rejected: dict[str, str] = Field(default_factory=dict)
    product_missing: bool = False
