"""FastAPI REST API for the storefront order flow."""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .auth import AuthStatusPoller, SessionStore
from .checkout import CheckoutStepMachine
from .client import StorefrontClient
from .config import Settings
from .draft import OrderDraftController
from .draft_store import DraftStore
from .errors import (
    CatalogError,
    CheckoutNotFoundError,
    IdentityError,
    InvalidShippingMethodError,
    NoSizeSelectedError,
    StorefrontError,
    UnknownFieldError,
)
from .models import Product
from .ports import CatalogSource, IdentityProvider, OrderSubmitter
from .validation import CardValidationPolicy

logger = logging.getLogger(__name__)

MAX_OPEN_CHECKOUTS = 32


# --- Pydantic Schemas ---


class SizeSchema(BaseModel):
    id: str
    name: str
    weight: str
    price: str
    stock: int
    container_image: Optional[str] = None


class ProductSchema(BaseModel):
    id: str
    name: str
    description: str
    images: list[str]
    features: list[str]
    sizes: list[SizeSchema]


class PricingSchema(BaseModel):
    subtotal: str
    shipping_cost: str
    total: str


class DraftSchema(BaseModel):
    product_id: str
    product_name: str
    selected_size: Optional[SizeSchema] = None
    quantity: int
    pricing: PricingSchema


class DraftMutationResponse(BaseModel):
    """A draft after a mutation; changed is False when the request was a no-op."""

    changed: bool
    draft: DraftSchema


class SelectSizeRequest(BaseModel):
    size_id: str = Field(..., description="Lower-cased size id, e.g. 'medium'")


class QuantityRequest(BaseModel):
    delta: int = Field(..., description="Amount to add to the quantity (negative to remove)")


class CheckoutSchema(BaseModel):
    id: str
    step: int
    errors: dict[str, str]
    completed: bool
    order_reference: Optional[str] = None
    submitting: bool
    form: dict[str, dict[str, str]]
    totals: PricingSchema


class FieldsUpdateRequest(BaseModel):
    fields: dict[str, str] = Field(..., description="Field name -> raw input value")


class CheckoutTransitionResponse(BaseModel):
    moved: bool
    checkout: CheckoutSchema


class ProfileSchema(BaseModel):
    first_name: str
    last_name: str
    email: str


class AuthSchema(BaseModel):
    is_authenticated: bool
    profile: Optional[ProfileSchema] = None


class ErrorResponse(BaseModel):
    detail: str
    error_type: str
    recovery: Optional[str] = None


# --- Application State ---


@dataclass
class AppState:
    """Objects the views work on, injected through get_state()."""

    product_id: str
    catalog: CatalogSource
    drafts: OrderDraftController
    poller: AuthStatusPoller
    submitter: OrderSubmitter
    card_policy: CardValidationPolicy = CardValidationPolicy.PRESENCE
    client: Optional[StorefrontClient] = None
    product: Optional[Product] = None
    checkouts: dict[str, CheckoutStepMachine] = field(default_factory=dict)

    async def load_product(self) -> Product:
        """Fetch the product once and restore the saved draft against it."""
        if self.product is None:
            product = await self.catalog.get_product(self.product_id)
            self.drafts.initialize(product)
            self.product = product
        return self.product

    def open_checkout(self) -> tuple[str, CheckoutStepMachine]:
        """
        Start a checkout for the current draft.

        Completed checkouts are dropped first, and the oldest idle ones once
        MAX_OPEN_CHECKOUTS are open.
        """
        for checkout_id in [cid for cid, m in self.checkouts.items() if m.state.completed]:
            del self.checkouts[checkout_id]
        while len(self.checkouts) >= MAX_OPEN_CHECKOUTS:
            oldest = next((cid for cid, m in self.checkouts.items() if not m.submitting), None)
            if oldest is None:
                break
            logger.info(f"Evicting abandoned checkout {oldest}")
            del self.checkouts[oldest]

        checkout_id = str(uuid.uuid4())
        machine = CheckoutStepMachine(self.drafts, self.submitter, self.card_policy)
        self.checkouts[checkout_id] = machine
        return checkout_id, machine

    def get_checkout(self, checkout_id: str) -> CheckoutStepMachine:
        machine = self.checkouts.get(checkout_id)
        if machine is None:
            raise CheckoutNotFoundError(checkout_id)
        return machine

    def discard_checkout(self, checkout_id: str) -> None:
        self.get_checkout(checkout_id)
        del self.checkouts[checkout_id]


def build_state(settings: Settings) -> AppState:
    """Wire the default collaborators from settings."""
    session_store = SessionStore(settings.session_file)
    client = StorefrontClient(settings.api_url, session_store)
    identity: IdentityProvider = client
    return AppState(
        product_id=settings.product_id,
        catalog=client,
        drafts=OrderDraftController(DraftStore(settings.data_dir), ttl=settings.draft_ttl),
        poller=AuthStatusPoller(identity, interval=settings.auth_poll_interval),
        submitter=client,
        card_policy=CardValidationPolicy(settings.card_validation),
        client=client,
    )


def get_state(request: Request) -> AppState:
    return request.app.state.storefront


def _draft_schema(state: AppState) -> DraftSchema:
    return DraftSchema(**state.drafts.draft.to_dict())


def _checkout_schema(checkout_id: str, machine: CheckoutStepMachine) -> CheckoutSchema:
    return CheckoutSchema(id=checkout_id, **machine.to_dict())


# --- FastAPI App ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    CatalogError: 502,
    NoSizeSelectedError: 409,
    UnknownFieldError: 400,
    InvalidShippingMethodError: 400,
    CheckoutNotFoundError: 404,
    IdentityError: 502,
}


def create_app(state: AppState | None = None) -> FastAPI:
    """
    Build the API around an AppState.

    Without a state the collaborators are wired from environment settings.
    """
    if state is None:
        state = build_state(Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run the auth reconciliation loop for the lifetime of the server."""
        state.poller.start()
        try:
            yield
        finally:
            await state.poller.stop()
            if state.client is not None:
                await state.client.aclose()

    app = FastAPI(
        title="storefront API",
        description="Order draft and checkout API for the storefront",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.storefront = state

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        """Map StorefrontError subclasses to appropriate HTTP responses."""
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        content = {"detail": str(exc), "error_type": type(exc).__name__}
        if isinstance(exc, CatalogError):
            # Page-level failure: the front-end offers a way back home
            content["recovery"] = "/"
        return JSONResponse(status_code=status_code, content=content)

    # --- Endpoints ---

    @app.get("/api/health")
    async def health_check(state: AppState = Depends(get_state)):
        """Health check endpoint."""
        return {
            "status": "ok",
            "product_id": state.product_id,
            "product_loaded": state.product is not None,
            "auth_polling": state.poller.running,
        }

    @app.get(
        "/api/product",
        response_model=ProductSchema,
        responses={502: {"model": ErrorResponse}},
    )
    async def get_product(state: AppState = Depends(get_state)):
        """The product offered on the order page."""
        product = await state.load_product()
        return ProductSchema(**product.to_dict())

    # --- Draft Endpoints ---

    @app.get("/api/draft", response_model=DraftSchema)
    async def get_draft(state: AppState = Depends(get_state)):
        """The current draft, restored from storage on first access."""
        await state.load_product()
        return _draft_schema(state)

    @app.post("/api/draft/size", response_model=DraftMutationResponse)
    async def select_size(request: SelectSizeRequest, state: AppState = Depends(get_state)):
        """Select a size; quantity goes back to 1."""
        await state.load_product()
        changed = state.drafts.select_size(request.size_id)
        return DraftMutationResponse(changed=changed, draft=_draft_schema(state))

    @app.post("/api/draft/quantity", response_model=DraftMutationResponse)
    async def change_quantity(request: QuantityRequest, state: AppState = Depends(get_state)):
        """Add delta to the quantity, clamped to the size's stock."""
        await state.load_product()
        changed = state.drafts.set_quantity(request.delta)
        return DraftMutationResponse(changed=changed, draft=_draft_schema(state))

    @app.get("/api/draft/totals", response_model=PricingSchema)
    async def get_totals(
        shipping_method: str = Query(default="standard"),
        state: AppState = Depends(get_state),
    ):
        """Totals of the draft for a shipping method."""
        await state.load_product()
        return PricingSchema(**state.drafts.totals(shipping_method).to_dict())

    @app.delete("/api/draft", response_model=DraftSchema)
    async def clear_draft(state: AppState = Depends(get_state)):
        """Cancel the draft and forget the saved selection."""
        await state.load_product()
        state.drafts.clear()
        return _draft_schema(state)

    # --- Checkout Endpoints ---

    @app.post("/api/checkout", response_model=CheckoutSchema, status_code=201)
    async def start_checkout(state: AppState = Depends(get_state)):
        """Open a checkout for the current draft."""
        await state.load_product()
        if state.drafts.draft.selected_size is None:
            raise NoSizeSelectedError()

        checkout_id, machine = state.open_checkout()
        return _checkout_schema(checkout_id, machine)

    @app.get("/api/checkout/{checkout_id}", response_model=CheckoutSchema)
    async def get_checkout(checkout_id: str, state: AppState = Depends(get_state)):
        return _checkout_schema(checkout_id, state.get_checkout(checkout_id))

    @app.delete("/api/checkout/{checkout_id}", status_code=204)
    async def discard_checkout(checkout_id: str, state: AppState = Depends(get_state)):
        """Abandon a checkout. The draft is kept."""
        state.discard_checkout(checkout_id)

    @app.patch("/api/checkout/{checkout_id}/fields", response_model=CheckoutSchema)
    async def update_checkout_fields(
        checkout_id: str,
        request: FieldsUpdateRequest,
        state: AppState = Depends(get_state),
    ):
        """Store field edits; values come back normalized."""
        machine = state.get_checkout(checkout_id)
        machine.update_fields(request.fields)
        return _checkout_schema(checkout_id, machine)

    @app.post("/api/checkout/{checkout_id}/advance", response_model=CheckoutTransitionResponse)
    async def advance_checkout(checkout_id: str, state: AppState = Depends(get_state)):
        """Validate the current step and move on (submitting on the last step)."""
        machine = state.get_checkout(checkout_id)
        moved = await machine.advance()
        return CheckoutTransitionResponse(
            moved=moved, checkout=_checkout_schema(checkout_id, machine)
        )

    @app.post("/api/checkout/{checkout_id}/retreat", response_model=CheckoutTransitionResponse)
    async def retreat_checkout(checkout_id: str, state: AppState = Depends(get_state)):
        machine = state.get_checkout(checkout_id)
        moved = machine.retreat()
        return CheckoutTransitionResponse(
            moved=moved, checkout=_checkout_schema(checkout_id, machine)
        )

    # --- Auth Endpoints ---

    @app.get("/api/auth", response_model=AuthSchema)
    async def get_auth(state: AppState = Depends(get_state)):
        """The last published authentication state."""
        return AuthSchema(**state.poller.session.to_dict())

    @app.post("/api/auth/logout", response_model=AuthSchema)
    async def logout(state: AppState = Depends(get_state)):
        if state.client is not None:
            await state.client.logout()
        state.poller.logout()
        return AuthSchema(**state.poller.session.to_dict())

    return app


app = create_app()
