"""User database table model."""

from src.catalog.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users."""

    __tablename__ = "users"

    first_name: str
    last_name: str
    email: str | None = None
