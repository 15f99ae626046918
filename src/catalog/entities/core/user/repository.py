from collections.abc import Iterable

from sqlmodel import Session, col, select

from src.catalog.entities.core.user.entity import User
from src.catalog.entities.core.user.table import UserTable


class UserRepository:
    """Data-access layer for users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        """Load users by id in one query; unknown ids are absent from the result."""
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        statement = select(UserTable).where(col(UserTable.id).in_(ids))
        return {
            row.id: User.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        }

    def create(self, user: User) -> User:
        row = UserTable.model_validate(user.model_dump())
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)
