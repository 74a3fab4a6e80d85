"""Custom exceptions for storefront."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


class CatalogError(StorefrontError):
    """Raised when the product catalog cannot be fetched or understood."""

    def __init__(self, product_id: str, reason: str | None = None):
        self.product_id = product_id
        self.reason = reason
        msg = f"Failed to load product {product_id}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class NoSizeSelectedError(StorefrontError):
    """Raised when an order payload is requested without a selected size."""

    def __init__(self) -> None:
        super().__init__("Select a size before proceeding to checkout.")


class UnknownFieldError(StorefrontError):
    """Raised when a checkout form field name doesn't exist."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Unknown checkout field: {field_name}")


class InvalidShippingMethodError(StorefrontError):
    """Raised when a shipping method name is not one of the offered methods."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Unknown shipping method: {method}")


class CheckoutNotFoundError(StorefrontError):
    """Raised when a checkout session ID doesn't exist."""

    def __init__(self, checkout_id: str):
        self.checkout_id = checkout_id
        super().__init__(f"Checkout not found: {checkout_id}")


class IdentityError(StorefrontError):
    """Raised when the identity service cannot return a profile."""

    def __init__(self, reason: str, code: int | None = None):
        self.reason = reason
        self.code = code
        super().__init__(f"Identity service error: {reason}")
