"""Quantity bounds for a selected size."""

from .models import ProductSize


def is_selectable(size: ProductSize) -> bool:
    """Out-of-stock sizes cannot be selected at all."""
    return size.stock > 0


def clamp(requested: int, size: ProductSize) -> int:
    """
    Bound a requested quantity to [1, size.stock].

    Zero and negative requests yield 1. Quantity is never 0, even for a size
    without stock; such sizes are rejected by is_selectable() before they get
    here.
    """
    upper = max(1, size.stock)
    return max(1, min(upper, requested))
