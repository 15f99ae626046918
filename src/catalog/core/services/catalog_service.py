"""Catalog service: product writes, cache-aside reads and media job dispatch."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from src.catalog.core.errors import CacheError, NotFound, TransactionFailure
from src.catalog.core.services.cache_keys import product_key, product_page_key
from src.catalog.core.services.database.db_session import DbSessionService
from src.catalog.core.services.media.models import MediaPayload, PendingMedia
from src.catalog.core.services.media.queue import MediaQueue
from src.catalog.core.storage.cache import Cache
from src.catalog.entities.core.user import User, UserRepository
from src.catalog.entities.service.product import (
    Product,
    ProductDetail,
    ProductPage,
    ProductRepository,
    to_price,
)
from src.catalog.entities.service.product.entity import TITLE_MAX_LENGTH
from src.catalog.runtime.config.config_data import ConfigData
from src.catalog.runtime.context import get_config

T = TypeVar("T", bound=BaseModel)

_MEDIA_FIELDS = {"image", "video"}


class _ProductCommand(BaseModel):
    image: MediaPayload | None = Field(default=None, description="Raw image upload")
    video: MediaPayload | None = Field(default=None, description="Raw video upload")

    @field_validator("price", mode="before", check_fields=False)
    @classmethod
    def quantize_price(cls, value: Any) -> Any:
        return to_price(value)

    def pending_media(self, product_id: str) -> PendingMedia | None:
        """Ingestion job for the raw uploads carried by this command, if any."""
        if self.image is None and self.video is None:
            return None
        return PendingMedia(product_id=product_id, image=self.image, video=self.video)


class CreateProductCommand(_ProductCommand):
    """Fields for a new product. Direct paths and raw uploads may both be given."""

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    image_path: str | None = None
    video_path: str | None = None
    user_id: str | None = None

    def record_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude=_MEDIA_FIELDS)


class UpdateProductCommand(_ProductCommand):
    """Partial update; only fields the caller set are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    image_path: str | None = None
    video_path: str | None = None
    user_id: str | None = None

    @model_validator(mode="after")
    def reject_null_required(self) -> UpdateProductCommand:
        for name in ("title", "description", "price"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def record_fields(self) -> dict[str, Any]:
        return self.model_dump(include=self.model_fields_set - _MEDIA_FIELDS)


class ListProductsQuery(BaseModel):
    search: str | None = None
    include_user: bool = False
    page: int = Field(default=1, ge=1)

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class CatalogService:
    """Create, update, delete, list and show products.

    Writes commit before anything else happens. Raw media uploads are handed
    to the media queue only after the commit succeeded, and a queue failure
    never undoes the commit. Reads are cache-aside: list pages for
    ``cache.list_ttl_seconds`` and details for ``cache.show_ttl_seconds``.
    Create and Update write their own detail entry deterministically.
    """

    def __init__(
        self,
        database: DbSessionService,
        cache: Cache,
        queue: MediaQueue,
        config: ConfigData | None = None,
    ):
        config = config or get_config()
        self._database = database
        self._cache = cache
        self._queue = queue
        self._ttl = config.cache
        self._page_size = config.catalog.page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    async def create(self, command: CreateProductCommand) -> Product:
        try:
            detail = await asyncio.to_thread(self._insert_record, command.record_fields())
        except SQLAlchemyError as e:
            logger.error("Product creation failed: {}", e)
            raise TransactionFailure("Product creation failed") from e

        product = detail.product
        await self._cache_put(product_key(product.id), detail, self._ttl.record_ttl_seconds)
        await self._dispatch(command.pending_media(product.id))
        logger.info("Product created", product_id=product.id)
        return product

    async def update(self, product_id: str, command: UpdateProductCommand) -> Product:
        try:
            detail = await asyncio.to_thread(
                self._update_record, product_id, command.record_fields()
            )
        except SQLAlchemyError as e:
            logger.error("Product update failed: {}", e, product_id=product_id)
            raise TransactionFailure("Product update failed") from e

        key = product_key(product_id)
        await self._cache_forget(key)
        await self._cache_put(key, detail, self._ttl.record_ttl_seconds)
        await self._dispatch(command.pending_media(product_id))
        logger.info("Product updated", product_id=product_id, fields=sorted(command.model_fields_set))
        return detail.product

    async def delete(self, product_id: str) -> None:
        """Delete a product. Its artifacts stay in the artifact store.

        The detail key is forgotten before the transaction and again after it
        commits.

        Raises:
            NotFound: The product does not exist, including when it was already deleted.
        """
        key = product_key(product_id)
        await self._cache_forget(key)
        try:
            deleted = await asyncio.to_thread(self._delete_record, product_id)
        except SQLAlchemyError as e:
            logger.error("Product deletion failed: {}", e, product_id=product_id)
            raise TransactionFailure("Product deletion failed") from e

        # A Show racing the transaction may have re-cached the row
        await self._cache_forget(key)
        if not deleted:
            raise NotFound("Product", product_id)
        logger.info("Product deleted", product_id=product_id)

    async def show(self, product_id: str) -> ProductDetail:
        key = product_key(product_id)
        cached = await self._cache_get(key, ProductDetail)
        if cached is not None:
            return cached

        try:
            detail = await asyncio.to_thread(self._load_detail, product_id)
        except SQLAlchemyError as e:
            logger.error("Product lookup failed: {}", e, product_id=product_id)
            raise TransactionFailure("Product lookup failed") from e

        if detail is None:
            raise NotFound("Product", product_id)

        await self._cache_put(key, detail, self._ttl.show_ttl_seconds)
        return detail

    async def list(self, query: ListProductsQuery) -> ProductPage:
        """One page of products, optionally filtered by a title search.

        With ``include_user`` the owners are loaded with the page and cached
        with it. Without it the cached page holds bare products and owners
        are attached after the cache lookup on every call.
        """
        key = product_page_key(query.page, query.search, query.include_user)
        page = await self._cache_get(key, ProductPage)
        try:
            if page is None:
                page = await asyncio.to_thread(self._load_page, query)
                await self._cache_put(key, page, self._ttl.list_ttl_seconds)
            if not query.include_user:
                page = await asyncio.to_thread(self._with_owners, page)
        except SQLAlchemyError as e:
            logger.error("Product listing failed: {}", e)
            raise TransactionFailure("Product listing failed") from e
        return page

    # Record store access; runs on a worker thread

    def _insert_record(self, fields: dict[str, Any]) -> ProductDetail:
        with self._database.session_scope() as session:
            product = ProductRepository(session).insert(fields)
            return ProductDetail(product=product, owner=self._owner(session, product.user_id))

    def _update_record(self, product_id: str, fields: dict[str, Any]) -> ProductDetail:
        with self._database.session_scope() as session:
            product = ProductRepository(session).update(product_id, fields)
            return ProductDetail(product=product, owner=self._owner(session, product.user_id))

    def _delete_record(self, product_id: str) -> bool:
        with self._database.session_scope() as session:
            return ProductRepository(session).delete(product_id)

    def _load_detail(self, product_id: str) -> ProductDetail | None:
        with self._database.session_scope() as session:
            product = ProductRepository(session).get(product_id)
            if product is None:
                return None
            return ProductDetail(product=product, owner=self._owner(session, product.user_id))

    def _load_page(self, query: ListProductsQuery) -> ProductPage:
        with self._database.session_scope() as session:
            items, has_more = ProductRepository(session).query(
                query.search, query.page, self._page_size
            )
            page = ProductPage(
                items=items, page=query.page, per_page=self._page_size, has_more=has_more
            )
            if query.include_user:
                page = self._attach_owners(session, page)
            return page

    def _with_owners(self, page: ProductPage) -> ProductPage:
        with self._database.session_scope() as session:
            return self._attach_owners(session, page)

    @staticmethod
    def _attach_owners(session: Session, page: ProductPage) -> ProductPage:
        owners = UserRepository(session).get_many(item.user_id for item in page.items)
        items = [item.model_copy(update={"owner": owners.get(item.user_id)}) for item in page.items]
        return page.model_copy(update={"items": items})

    @staticmethod
    def _owner(session: Session, user_id: str | None) -> User | None:
        if not user_id:
            return None
        return UserRepository(session).get(user_id)

    async def _dispatch(self, job: PendingMedia | None) -> str | None:
        if job is None:
            return None
        try:
            ticket = await self._queue.enqueue(job)
        except Exception:
            # The record is committed; media for it is lost until re-uploaded
            logger.exception("Media job enqueue failed", product_id=job.product_id)
            return None
        logger.info("Media job enqueued", product_id=job.product_id, ticket=ticket)
        return ticket

    async def _cache_get(self, key: str, model_class: type[T]) -> T | None:
        try:
            return await self._cache.get(key, model_class)
        except CacheError as e:
            logger.error("Cache read failed; falling back to the store", key=key, error=str(e))
            return None

    async def _cache_put(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        try:
            await self._cache.put(key, value, ttl_seconds)
        except CacheError as e:
            logger.error("Cache write failed", key=key, error=str(e))

    async def _cache_forget(self, key: str) -> None:
        try:
            await self._cache.forget(key)
        except CacheError as e:
            logger.error("Cache invalidation failed", key=key, error=str(e))
