import re
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import false, func, or_
from sqlmodel import Session, col, select

from src.catalog.core.errors import NotFound
from src.catalog.entities.service.product.entity import Product, ProductSummary
from src.catalog.entities.service.product.table import ProductTable

_WORD = re.compile(r"\w+", re.UNICODE)


class ProductRepository:
    """Data-access layer for products.

    The repository never commits; callers own the transaction through
    ``DbSessionService.session_scope()``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, product_id: str) -> Product | None:
        row = self._session.get(ProductTable, product_id)
        if row is None:
            return None
        return Product.model_validate(row, from_attributes=True)

    def insert(self, fields: dict[str, Any]) -> Product:
        row = ProductTable(**fields)
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return Product.model_validate(row, from_attributes=True)

    def update(self, product_id: str, fields: dict[str, Any]) -> Product:
        """Apply ``fields`` to an existing product; only the given columns change."""
        row = self._session.get(ProductTable, product_id)
        if row is None:
            raise NotFound("Product", product_id)

        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = datetime.now(UTC)

        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return Product.model_validate(row, from_attributes=True)

    def delete(self, product_id: str) -> bool:
        row = self._session.get(ProductTable, product_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True

    def query(
        self, search: str | None, page: int, page_size: int
    ) -> tuple[list[ProductSummary], bool]:
        """Return one page of products and whether another page follows.

        Fetches ``page_size + 1`` rows instead of counting the whole result.
        """
        statement = select(
            ProductTable.id,
            ProductTable.title,
            ProductTable.price,
            ProductTable.image_path,
            ProductTable.video_path,
            ProductTable.user_id,
        )
        if search:
            statement = statement.where(self._title_matches(search))

        statement = (
            statement.order_by(col(ProductTable.created_at), col(ProductTable.id))
            .offset((max(page, 1) - 1) * page_size)
            .limit(page_size + 1)
        )
        rows = self._session.exec(statement).all()
        items = [ProductSummary.model_validate(row, from_attributes=True) for row in rows[:page_size]]
        return items, len(rows) > page_size

    def _title_matches(self, search: str):
        """Natural-language style match: any search term hits the title."""
        terms = _WORD.findall(search.lower())
        if not terms:
            return false()

        if self._session.get_bind().dialect.name == "postgresql":
            query = func.to_tsquery("english", " | ".join(terms))
            return func.to_tsvector("english", ProductTable.title).op("@@")(query)

        return or_(*(col(ProductTable.title).icontains(term, autoescape=True) for term in terms))
