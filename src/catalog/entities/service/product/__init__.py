"""Entity package: Product."""

from .entity import Product, ProductDetail, ProductPage, ProductSummary, to_price
from .repository import ProductRepository
from .table import ProductTable

__all__ = [
    "Product",
    "ProductDetail",
    "ProductPage",
    "ProductRepository",
    "ProductSummary",
    "ProductTable",
    "to_price",
]
