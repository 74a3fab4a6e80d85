"""storefront: order draft and checkout state machine for a single-product shop."""

__version__ = "0.1.0"
