"""Entities module with an entity-centric structure.

Each entity has its own package containing:
- entity.py: Domain model with business logic
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.user import User, UserRepository, UserTable
from .service.product import (
    Product,
    ProductDetail,
    ProductPage,
    ProductRepository,
    ProductSummary,
    ProductTable,
)

__all__ = [
    "User",
    "UserTable",
    "UserRepository",
    "Product",
    "ProductDetail",
    "ProductPage",
    "ProductRepository",
    "ProductSummary",
    "ProductTable",
]
