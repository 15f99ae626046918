"""Product database table model."""

from decimal import Decimal

from sqlalchemy import DDL, Column, Text, event
from sqlmodel import Field

from src.catalog.entities.core._base import EntityTable
from src.catalog.entities.core.user.table import UserTable  # noqa: F401


class ProductTable(EntityTable, table=True):
    """Database persistence model for products."""

    __tablename__ = "products"

    title: str = Field(max_length=255)
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    price: Decimal = Field(max_digits=10, decimal_places=2)
    image_path: str | None = Field(default=None)
    video_path: str | None = Field(default=None)
    user_id: str | None = Field(default=None, foreign_key="users.id", index=True)


# Full-text index backing title search; other dialects fall back to LIKE matching.
event.listen(
    ProductTable.__table__,
    "after_create",
    DDL(
        "CREATE INDEX IF NOT EXISTS ix_products_title_fts "
        "ON products USING gin (to_tsvector('english', title))"
    ).execute_if(dialect="postgresql"),
)
