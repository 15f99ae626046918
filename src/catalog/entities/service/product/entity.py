"""Entity: Product."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.catalog.entities.core._base import Entity
from src.catalog.entities.core.user import User

TITLE_MAX_LENGTH = 255
_CENT = Decimal("0.01")


def to_price(value: Any) -> Any:
    """Quantize a price input to two decimal places (half up).

    Non-numeric input is returned unchanged so pydantic reports it.
    """
    if value is None or isinstance(value, bool):
        return value
    try:
        return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return value


class Product(Entity):
    """Product entity representing a catalog item.

    Media references are artifact paths produced by the ingestion worker or
    supplied directly by the caller.
    """

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="")
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    image_path: str | None = Field(default=None, description="Normalized image artifact path")
    video_path: str | None = Field(default=None, description="Video artifact path")
    user_id: str | None = Field(default=None, description="Owning user id")

    @field_validator("price", mode="before")
    @classmethod
    def quantize_price(cls, value: Any) -> Any:
        return to_price(value)

    @property
    def formatted_price(self) -> str:
        return f"${self.price:,.2f}"

    @property
    def has_image(self) -> bool:
        return bool(self.image_path)

    @property
    def has_video(self) -> bool:
        return bool(self.video_path)

    @property
    def slug(self) -> str:
        return re.sub(r"[^a-z0-9]+", "-", self.title.lower()).strip("-")

    def __eq__(self, other: Any) -> bool:
        """Compare products by business attributes, ignoring timestamps."""
        if not isinstance(other, Product):
            return False

        return (
            self.id == other.id
            and self.title == other.title
            and self.description == other.description
            and self.price == other.price
            and self.image_path == other.image_path
            and self.video_path == other.video_path
            and self.user_id == other.user_id
        )

    def __hash__(self) -> int:
        return hash((
            self.id,
            self.title,
            self.description,
            self.price,
            self.image_path,
            self.video_path,
            self.user_id,
        ))


class ProductSummary(BaseModel):
    """List projection of a product; the description is not loaded for pages."""

    id: str
    title: str
    price: Decimal
    image_path: str | None = None
    video_path: str | None = None
    user_id: str | None = None
    owner: User | None = None


class ProductPage(BaseModel):
    """One page of products without a total count."""

    items: list[ProductSummary] = Field(default_factory=list)
    page: int
    per_page: int
    has_more: bool = False


class ProductDetail(BaseModel):
    """A product together with its owner, cached as one unit."""

    product: Product
    owner: User | None = None
