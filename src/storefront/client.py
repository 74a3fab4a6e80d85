"""HTTP client for the storefront backend.

Implements the catalog, identity and order submission services on top of
httpx. Backend responses use the envelope {code, message, data, errors}.
"""

import logging
from typing import Any

import httpx

from .auth import SessionStore
from .catalog import product_from_catalog
from .errors import CatalogError, IdentityError
from .models import Product, SubmissionResult, UserProfile

logger = logging.getLogger(__name__)


class StorefrontClient:
    """Client for the storefront backend API."""

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Backend API root, e.g. https://shop.example/api/v1
            session_store: Holds the bearer token used for signed-in calls.
            transport: Override the HTTP transport (for testing).
            timeout: Request timeout in seconds.
        """
        self.session_store = session_store
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        if not self.session_store.is_authenticated:
            return {}
        return {"Authorization": f"Bearer {self.session_store.token}"}

    @staticmethod
    def _envelope(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {"code": response.status_code, "message": response.text, "data": None}
        if not isinstance(body, dict):
            return {"code": response.status_code, "message": "unexpected response", "data": None}
        return body

    async def get_product(self, product_id: str) -> Product:
        """
        Fetch a catalog product.

        Raises:
            CatalogError: On transport errors, error envelopes or bad payloads.
        """
        try:
            response = await self.client.get(f"/product/get/{product_id}")
        except httpx.HTTPError as e:
            logger.warning(f"Catalog request failed: {e}")
            raise CatalogError(product_id, str(e)) from e

        body = self._envelope(response)
        if response.status_code != 200 or body.get("code", 200) != 200:
            raise CatalogError(product_id, body.get("message") or f"HTTP {response.status_code}")
        if not body.get("data"):
            raise CatalogError(product_id, "no product data available")

        return product_from_catalog(body["data"])

    def is_authenticated(self) -> bool:
        return self.session_store.is_authenticated

    def clear_session(self) -> None:
        self.session_store.clear()

    async def fetch_profile(self) -> UserProfile:
        """
        Fetch the signed-in user's profile.

        Raises:
            IdentityError: If there is no token or the backend refused.
        """
        if not self.session_store.is_authenticated:
            raise IdentityError("No token passed", code=401)

        try:
            response = await self.client.get("/user/get", headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise IdentityError(str(e)) from e

        body = self._envelope(response)
        code = body.get("code", response.status_code)
        data = body.get("data")
        if code != 200 or not isinstance(data, dict):
            raise IdentityError(body.get("message") or "profile unavailable", code=code)
        return UserProfile.from_dict(data)

    async def logout(self) -> None:
        """Tell the backend to end the session. The local session is always cleared."""
        headers = self._auth_headers()
        try:
            if headers:
                await self.client.get("/auth/logout", headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Logout request failed: {e}")
        finally:
            self.session_store.clear()

    async def submit_order(self, submission: dict[str, Any]) -> SubmissionResult:
        """Post a completed checkout. Failures come back as ok=False."""
        try:
            response = await self.client.post(
                "/order/create", json=submission, headers=self._auth_headers()
            )
        except httpx.HTTPError as e:
            logger.warning(f"Order submission request failed: {e}")
            return SubmissionResult(ok=False)

        body = self._envelope(response)
        code = body.get("code", response.status_code)
        if response.status_code >= 400 or not isinstance(code, int) or code >= 400:
            return SubmissionResult(ok=False, message=body.get("message") or None)

        data = body.get("data") or {}
        reference = data.get("order_id") if isinstance(data, dict) else None
        return SubmissionResult(ok=True, order_reference=str(reference) if reference else None)
