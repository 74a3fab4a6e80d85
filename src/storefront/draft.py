"""Order draft controller."""

import logging

from . import pricing, stock
from .config import DEFAULT_DRAFT_TTL, DRAFT_KEY
from .draft_store import DraftStore
from .errors import NoSizeSelectedError
from .models import (
    DraftRecord,
    OrderDraft,
    OrderPayload,
    PricingSnapshot,
    Product,
    ShippingMethod,
)

logger = logging.getLogger(__name__)


class OrderDraftController:
    """
    Owns the in-progress purchase configuration.

    Every mutation recomputes the pricing snapshot and writes the draft
    through to the store, so a reload never loses the last good selection.
    """

    def __init__(
        self,
        store: DraftStore,
        key: str = DRAFT_KEY,
        ttl: float = DEFAULT_DRAFT_TTL,
    ):
        self.store = store
        self.key = key
        self.ttl = ttl
        self.product: Product | None = None
        self.draft = OrderDraft()

    def initialize(self, product: Product) -> OrderDraft:
        """
        Start a draft for the product, restoring a saved selection if it still fits.

        A saved selection is dropped when it belongs to another product, when
        its size is no longer in the catalog, or when that size is sold out.
        """
        self.product = product
        self.draft = OrderDraft(product_id=product.id, product_name=product.name)

        record = DraftRecord.from_dict(self.store.load(self.key))
        if record is None:
            return self.draft

        size = product.find_size(record.size_id)
        if record.product_id != product.id or size is None or not stock.is_selectable(size):
            logger.debug(f"Discarding stale draft selection {record.size_id!r}")
            self.store.clear(self.key)
            return self.draft

        self.draft.selected_size = size
        self.draft.quantity = stock.clamp(record.quantity, size)
        self._recompute()
        return self.draft

    def _recompute(self) -> None:
        if self.draft.selected_size is None:
            self.draft.pricing = PricingSnapshot.zero()
        else:
            self.draft.pricing = pricing.compute_totals(self.draft, ShippingMethod.STANDARD)

    def _persist(self) -> None:
        record = self.draft.to_record()
        if record is not None:
            self.store.save(self.key, record.to_dict(), self.ttl)

    def select_size(self, size_id: str) -> bool:
        """
        Select a size and reset quantity to 1.

        Returns False, changing nothing, if no product is loaded yet or the
        size is unknown or sold out.
        """
        if self.product is None:
            return False
        size = self.product.find_size(size_id)
        if size is None or not stock.is_selectable(size):
            return False

        self.draft.selected_size = size
        self.draft.quantity = 1
        self._recompute()
        self._persist()
        return True

    def set_quantity(self, delta: int) -> bool:
        """
        Change quantity by delta, clamped to the selected size's stock.

        Returns False, changing nothing, if no size is selected or the
        clamped quantity equals the current one.
        """
        size = self.draft.selected_size
        if size is None:
            return False

        quantity = stock.clamp(self.draft.quantity + delta, size)
        if quantity == self.draft.quantity:
            return False

        self.draft.quantity = quantity
        self._recompute()
        self._persist()
        return True

    def totals(self, method: ShippingMethod | str = ShippingMethod.STANDARD) -> PricingSnapshot:
        return pricing.compute_totals(self.draft, method)

    def _size_index(self, size_id: str) -> int:
        """1-based position of the size in the catalog list, as the backend numbers them."""
        sizes = self.product.sizes if self.product else ()
        for index, size in enumerate(sizes, start=1):
            if size.id == size_id:
                return index
        return 0

    def to_order_payload(
        self, method: ShippingMethod | str = ShippingMethod.STANDARD
    ) -> OrderPayload:
        """
        Snapshot the draft for order submission.

        Raises:
            NoSizeSelectedError: If no size is selected.
        """
        size = self.draft.selected_size
        if size is None:
            raise NoSizeSelectedError()

        method = ShippingMethod.parse(method)
        totals = pricing.compute_totals(self.draft, method)
        return OrderPayload(
            product_id=self.draft.product_id,
            product_name=self.draft.product_name,
            size_id=size.id,
            size_name=size.name,
            size_index=self._size_index(size.id),
            quantity=self.draft.quantity,
            unit_price=size.price,
            subtotal=totals.subtotal,
            shipping_method=method,
            shipping_cost=totals.shipping_cost,
            total=totals.total,
        )

    def clear(self) -> None:
        """Empty the draft and forget the saved selection."""
        if self.product is not None:
            self.draft = OrderDraft(product_id=self.product.id, product_name=self.product.name)
        else:
            self.draft = OrderDraft()
        self.store.clear(self.key)
        logger.info("Order draft cleared")
