"""User domain entity."""

from typing import Any

from pydantic import Field

from src.catalog.entities.core._base import Entity


class User(Entity):
    """Owner of catalog products. Users are managed outside the catalog."""

    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str | None = Field(default=None, max_length=255)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __eq__(self, other: Any) -> bool:
        # Timestamps differ in precision once a row has been through the database
        if not isinstance(other, User):
            return False
        return self.model_dump(exclude={"created_at", "updated_at"}) == other.model_dump(
            exclude={"created_at", "updated_at"}
        )

    def __hash__(self) -> int:
        return hash(self.id)
