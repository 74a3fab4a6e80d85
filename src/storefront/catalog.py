"""Mapping of catalog responses to Product models."""

from typing import Any

from .errors import CatalogError
from .models import Product, ProductSize
from .pricing import parse_price


def join_image_url(base_url: str | None, path: str) -> str:
    """Join an image path onto the catalog's image base URL."""
    if not base_url:
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _parse_stock(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        stock = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, stock)


def size_from_catalog(data: dict[str, Any], image_base_url: str | None = None) -> ProductSize:
    """
    Map one catalog size entry.

    The entry's ``quantity`` is the available stock. A missing or
    non-numeric price maps to 0.00.
    """
    label = str(data.get("size") or "").strip()
    container_image = data.get("container_image")
    return ProductSize(
        id=label.lower(),
        name=label,
        weight=str(data.get("weight") or ""),
        price=parse_price(data.get("price")),
        stock=_parse_stock(data.get("quantity")),
        container_image=join_image_url(image_base_url, container_image) if container_image else None,
    )


def product_from_catalog(data: Any) -> Product:
    """
    Map a catalog product description to a Product.

    Raises:
        CatalogError: If the description has no usable id or name, or its
            sizes are not a list.
    """
    if not isinstance(data, dict):
        raise CatalogError("?", "no product data available")

    raw_id = data.get("ID", data.get("id"))
    if raw_id is None or str(raw_id).strip() == "":
        raise CatalogError("?", "product has no id")
    product_id = str(raw_id)

    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise CatalogError(product_id, "product has no name")

    raw_sizes = data.get("sizes") or []
    if not isinstance(raw_sizes, list):
        raise CatalogError(product_id, "sizes is not a list")

    base_url = data.get("image_base_url")
    sizes = tuple(
        size_from_catalog(s, base_url)
        for s in raw_sizes
        if isinstance(s, dict) and str(s.get("size") or "").strip()
    )
    return Product(
        id=product_id,
        name=name,
        description=str(data.get("description") or ""),
        images=tuple(join_image_url(base_url, str(i)) for i in data.get("images") or []),
        features=tuple(str(f) for f in data.get("features") or []),
        sizes=sizes,
    )
