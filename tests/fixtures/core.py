from __future__ import annotations

from collections.abc import Generator
from io import BytesIO

import pytest
from PIL import Image
from sqlalchemy import StaticPool
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from src.catalog.core.services.database.db_session import DbSessionService
from src.catalog.entities.core.user import User, UserRepository

__all__ = [
    "database_service",
    "db_session",
    "engine",
    "image_bytes",
    "jpeg_bytes",
    "owner",
    "png_bytes",
    "webp_bytes",
]


def image_bytes(fmt: str = "PNG", size: tuple[int, int] = (1200, 900), color=(200, 30, 30)) -> bytes:
    """Encode a solid-color image in ``fmt``."""
    buffer = BytesIO()
    mode = "RGBA" if fmt == "PNG" else "RGB"
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return image_bytes("PNG", size=(320, 200))


@pytest.fixture
def jpeg_bytes() -> bytes:
    return image_bytes("JPEG", size=(1600, 1200))


@pytest.fixture
def webp_bytes() -> bytes:
    return image_bytes("WEBP", size=(640, 640))


@pytest.fixture
def engine() -> Generator[Engine]:
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Import models to register them with the metadata
    from src.catalog.entities.core.user import UserTable  # noqa: F401
    from src.catalog.entities.service.product import ProductTable  # noqa: F401

    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def database_service(engine: Engine) -> DbSessionService:
    return DbSessionService(engine)


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def owner(database_service: DbSessionService) -> User:
    """A persisted user products can belong to."""
    with database_service.session_scope() as session:
        return UserRepository(session).create(
            User(first_name="Ada", last_name="Lovelace", email="ada@example.com")
        )
