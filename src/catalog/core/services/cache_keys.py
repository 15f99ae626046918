"""Cache key layout shared by the catalog service and the ingestion worker."""


def product_key(product_id: str) -> str:
    """Detail entry for one product (record plus owner)."""
    return f"product_{product_id}"


def product_page_key(page: int, search: str | None, include_user: bool) -> str:
    """List entry for one (page, search term, include-user) query shape."""
    return f"products_page_{page}_{search or ''}_user_{int(include_user)}"
