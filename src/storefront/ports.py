"""Protocol definitions for the services the checkout core talks to."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .models import Product, SubmissionResult, UserProfile


class CatalogSource(Protocol):
    """Fetches the product offered on the order page."""

    async def get_product(self, product_id: str) -> Product:
        """Fetch and map a catalog product.

        Raises:
            CatalogError: If the product cannot be fetched or understood.
        """
        ...


class IdentityProvider(Protocol):
    """Protocol for the identity service.

    is_authenticated() only looks at the locally stored session and must not
    block. fetch_profile() is the one call that goes over the network.
    """

    def is_authenticated(self) -> bool:
        ...

    async def fetch_profile(self) -> UserProfile:
        """Fetch the signed-in user's profile.

        Raises:
            IdentityError: If there is no session or the service refused.
        """
        ...

    def clear_session(self) -> None:
        """Forget the local session token."""
        ...


class OrderSubmitter(Protocol):
    """Accepts a completed checkout.

    Implementations report failures through SubmissionResult.ok; the step
    machine also treats a raised exception as a failed submission.
    """

    async def submit_order(self, submission: dict[str, Any]) -> SubmissionResult:
        ...
