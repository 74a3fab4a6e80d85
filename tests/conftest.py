"""Pytest fixtures for storefront tests."""

import asyncio
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from storefront.draft import OrderDraftController
from storefront.draft_store import DraftStore
from storefront.errors import CatalogError, IdentityError
from storefront.models import Product, ProductSize, SubmissionResult, UserProfile


def make_size(
    size_id: str = "medium",
    price: str = "12.50",
    stock: int = 3,
    weight: str = "500g",
) -> ProductSize:
    """Build a ProductSize with readable defaults."""
    return ProductSize(
        id=size_id,
        name=size_id.capitalize(),
        weight=weight,
        price=Decimal(price),
        stock=stock,
    )


def make_product(*sizes: ProductSize, product_id: str = "847694") -> Product:
    """Build a Product; defaults to small/medium/large plus a sold-out jumbo."""
    if not sizes:
        sizes = (
            make_size("small", price="8.00", stock=10),
            make_size("medium", price="12.50", stock=3),
            make_size("large", price="20.00", stock=5),
            make_size("jumbo", price="35.00", stock=0),
        )
    return Product(id=product_id, name="Shea Butter", sizes=tuple(sizes))


class FakeClock:
    """Controllable replacement for time.time()."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog:
    """Catalog source returning a fixed product (or failing)."""

    def __init__(self, product: Product | None = None, fail: bool = False):
        self.product = product or make_product()
        self.fail = fail
        self.calls = 0

    async def get_product(self, product_id: str) -> Product:
        self.calls += 1
        if self.fail:
            raise CatalogError(product_id, "backend unreachable")
        return self.product


class FakeIdentity:
    """
    Identity provider whose profile fetch waits until released.

    Tests flip ``token`` to simulate a session appearing or going away.
    """

    def __init__(self, token: str | None = None, profile: UserProfile | None = None):
        self.token = token
        self.profile = profile or UserProfile("Ada", "Obi", "ada@example.com")
        self.fetch_calls = 0
        self.release = asyncio.Event()
        self.fail = False
        self.block = False

    def is_authenticated(self) -> bool:
        return bool(self.token)

    async def fetch_profile(self) -> UserProfile:
        self.fetch_calls += 1
        if self.block:
            await self.release.wait()
        if self.fail:
            raise IdentityError("No token passed", code=401)
        return self.profile

    def clear_session(self) -> None:
        self.token = None


class FakeSubmitter:
    """Order submitter recording submissions and returning queued results."""

    def __init__(self, *results: SubmissionResult | Exception):
        self.results = list(results) or [SubmissionResult(ok=True, order_reference="ORD-1")]
        self.submissions: list[dict] = []

    async def submit_order(self, submission: dict) -> SubmissionResult:
        self.submissions.append(submission)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def draft_store(temp_dir, clock):
    return DraftStore(temp_dir, clock=clock)


@pytest.fixture
def product():
    return make_product()


@pytest.fixture
def controller(draft_store, product):
    """A draft controller initialized with the default product."""
    ctrl = OrderDraftController(draft_store)
    ctrl.initialize(product)
    return ctrl
