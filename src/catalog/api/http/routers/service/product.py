"""Product API router with CRUD operations.

Writes take multipart forms so raw image and video uploads can ride along
with the record fields; the uploads are ingested asynchronously.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import PurePath
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ValidationError
from starlette.responses import JSONResponse

from src.catalog.api.http.deps import get_artifact_store, get_catalog_service
from src.catalog.core.errors import NotFound, TransactionFailure
from src.catalog.core.services import (
    CatalogService,
    CreateProductCommand,
    ListProductsQuery,
    UpdateProductCommand,
)
from src.catalog.core.services.media.models import MediaPayload
from src.catalog.core.storage import ArtifactStore
from src.catalog.entities import Product, ProductPage, User
from src.catalog.runtime.context import get_config

router = APIRouter(prefix="/products", tags=["products"])


class OwnerResponse(BaseModel):
    id: str
    name: str
    first_name: str
    last_name: str
    email: str | None = None

    @classmethod
    def of(cls, user: User) -> "OwnerResponse":
        return cls(
            id=user.id,
            name=user.full_name,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
        )


class ProductResponse(BaseModel):
    id: str
    title: str
    slug: str
    description: str
    price: Decimal
    formatted_price: str
    image_path: str | None = None
    video_path: str | None = None
    image_url: str | None = None
    video_url: str | None = None
    user_id: str | None = None
    owner: OwnerResponse | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, product: Product, store: ArtifactStore, owner: User | None = None) -> "ProductResponse":
        return cls(
            id=product.id,
            title=product.title,
            slug=product.slug,
            description=product.description,
            price=product.price,
            formatted_price=product.formatted_price,
            image_path=product.image_path,
            video_path=product.video_path,
            image_url=store.url_for(product.image_path) if product.image_path else None,
            video_url=store.url_for(product.video_path) if product.video_path else None,
            user_id=product.user_id,
            owner=OwnerResponse.of(owner) if owner else None,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class ProductListItem(BaseModel):
    id: str
    title: str
    price: Decimal
    image_url: str | None = None
    video_url: str | None = None
    owner: OwnerResponse | None = None


class ProductListResponse(BaseModel):
    data: list[ProductListItem]
    page: int
    per_page: int
    has_more: bool

    @classmethod
    def build(cls, page: ProductPage, store: ArtifactStore) -> "ProductListResponse":
        return cls(
            data=[
                ProductListItem(
                    id=item.id,
                    title=item.title,
                    price=item.price,
                    image_url=store.url_for(item.image_path) if item.image_path else None,
                    video_url=store.url_for(item.video_path) if item.video_path else None,
                    owner=OwnerResponse.of(item.owner) if item.owner else None,
                )
                for item in page.items
            ],
            page=page.page,
            per_page=page.per_page,
            has_more=page.has_more,
        )


async def _read_upload(upload: UploadFile | None, medium: str) -> MediaPayload | None:
    """Enforce the upload allow-list and size limit, then read the bytes."""
    if upload is None or not upload.filename:
        return None

    media_config = get_config().media
    if medium == "image":
        allowed, max_kb = media_config.allowed_image_extensions, media_config.max_image_kb
    else:
        allowed, max_kb = media_config.allowed_video_extensions, media_config.max_video_kb

    extension = PurePath(upload.filename).suffix.lstrip(".").lower()
    if extension not in allowed:
        raise HTTPException(
            status_code=422,
            detail=f"The {medium} must be a file of type: {', '.join(allowed)}.",
        )

    limit = max_kb * 1024
    too_large = HTTPException(
        status_code=422,
        detail=f"The {medium} may not be greater than {max_kb} kilobytes.",
    )
    if upload.size is not None and upload.size > limit:
        raise too_large

    # size is unknown for some clients; never buffer more than one byte past the limit
    content = await upload.read(limit + 1)
    if len(content) > limit:
        raise too_large
    return MediaPayload(content=content, extension=extension)


def _validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail=jsonable_encoder(e.errors(include_url=False, include_context=False)),
    )


@router.get("", response_model=ProductListResponse)
async def list_products(
    search: str | None = Query(None),
    include_user: bool = Query(False),
    page: int = Query(1, ge=1),
    service: CatalogService = Depends(get_catalog_service),
    store: ArtifactStore = Depends(get_artifact_store),
) -> ProductListResponse | JSONResponse:
    """List products 11 at a time, optionally filtered by a title search."""
    try:
        result = await service.list(
            ListProductsQuery(search=search, include_user=include_user, page=page)
        )
    except TransactionFailure:
        return JSONResponse(
            status_code=500, content={"error": "Failed to list products. Please try again later."}
        )
    return ProductListResponse.build(result, store)


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    title: str = Form(...),
    description: str = Form(...),
    price: str = Form(...),
    image_path: str | None = Form(None),
    video_path: str | None = Form(None),
    user_id: str | None = Form(None),
    image: UploadFile | None = File(None),
    video: UploadFile | None = File(None),
    service: CatalogService = Depends(get_catalog_service),
    store: ArtifactStore = Depends(get_artifact_store),
) -> ProductResponse | JSONResponse:
    """Create a product. Uploaded media is attached once ingestion finishes."""
    try:
        command = CreateProductCommand(
            title=title,
            description=description,
            price=price,
            image_path=image_path,
            video_path=video_path,
            user_id=user_id,
            image=await _read_upload(image, "image"),
            video=await _read_upload(video, "video"),
        )
    except ValidationError as e:
        raise _validation_error(e) from e

    try:
        product = await service.create(command)
    except TransactionFailure:
        return JSONResponse(
            status_code=500, content={"error": "Product creation failed, please try again later."}
        )
    return ProductResponse.build(product, store)


@router.get("/{product_id}", response_model=ProductResponse)
async def show_product(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
    store: ArtifactStore = Depends(get_artifact_store),
) -> ProductResponse | JSONResponse:
    """Get a product with its owner."""
    try:
        detail = await service.show(product_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail="Product not found") from e
    except TransactionFailure:
        return JSONResponse(
            status_code=500, content={"error": "Failed to load product. Please try again later."}
        )
    return ProductResponse.build(detail.product, store, detail.owner)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    title: str | None = Form(None),
    description: str | None = Form(None),
    price: str | None = Form(None),
    image_path: str | None = Form(None),
    video_path: str | None = Form(None),
    user_id: str | None = Form(None),
    image: UploadFile | None = File(None),
    video: UploadFile | None = File(None),
    service: CatalogService = Depends(get_catalog_service),
    store: ArtifactStore = Depends(get_artifact_store),
) -> ProductResponse | JSONResponse:
    """Update only the fields that were sent."""
    sent: dict[str, Any] = {
        "title": title,
        "description": description,
        "price": price,
        "image_path": image_path,
        "video_path": video_path,
        "user_id": user_id,
        "image": await _read_upload(image, "image"),
        "video": await _read_upload(video, "video"),
    }
    try:
        command = UpdateProductCommand(**{k: v for k, v in sent.items() if v is not None})
    except ValidationError as e:
        raise _validation_error(e) from e

    try:
        product = await service.update(product_id, command)
    except NotFound as e:
        raise HTTPException(status_code=404, detail="Product not found") from e
    except TransactionFailure:
        return JSONResponse(
            status_code=500, content={"error": "Failed to update product. Please try again later."}
        )
    return ProductResponse.build(product, store)


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    """Delete a product. Its media artifacts are kept."""
    try:
        await service.delete(product_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail="Product not found") from e
    except TransactionFailure:
        return JSONResponse(
            status_code=500, content={"error": "Failed to delete product. Please try again later."}
        )
    return Response(status_code=204)
