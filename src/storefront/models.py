"""Data models for storefront."""

from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any

from .errors import InvalidShippingMethodError, UnknownFieldError

PHONE_PREFIX = "+234"

ZERO = Decimal("0.00")


# Models for the catalog


@dataclass(frozen=True)
class ProductSize:
    """A purchasable size of the product, as fetched from the catalog."""

    id: str  # lower-cased size label, e.g. "medium"
    name: str
    weight: str
    price: Decimal
    stock: int
    container_image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "price": str(self.price),
            "stock": self.stock,
            "container_image": self.container_image,
        }


@dataclass(frozen=True)
class Product:
    """A catalog product with its size list."""

    id: str
    name: str
    description: str = ""
    images: tuple[str, ...] = ()
    features: tuple[str, ...] = ()
    sizes: tuple[ProductSize, ...] = ()

    def find_size(self, size_id: str) -> ProductSize | None:
        for size in self.sizes:
            if size.id == size_id:
                return size
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "images": list(self.images),
            "features": list(self.features),
            "sizes": [s.to_dict() for s in self.sizes],
        }


class ShippingMethod(str, Enum):
    """Delivery options offered at the shipping step."""

    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"

    @classmethod
    def parse(cls, value: "ShippingMethod | str") -> "ShippingMethod":
        """
        Convert a method name to a ShippingMethod.

        Raises:
            InvalidShippingMethodError: If the name is not an offered method.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidShippingMethodError(str(value)) from None


# Models for the order draft


@dataclass(frozen=True)
class PricingSnapshot:
    """Subtotal, shipping cost and total of a draft."""

    subtotal: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def zero(cls) -> "PricingSnapshot":
        return cls()

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal": f"{self.subtotal:.2f}",
            "shipping_cost": f"{self.shipping_cost:.2f}",
            "total": f"{self.total:.2f}",
        }


@dataclass
class DraftRecord:
    """The persisted form of an order draft."""

    size_id: str
    quantity: int
    product_id: str
    product_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sizeId": self.size_id,
            "quantity": self.quantity,
            "productId": self.product_id,
            "productName": self.product_name,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "DraftRecord | None":
        """
        Parse a stored record.

        Unknown keys are ignored. Returns None for partial or malformed
        records instead of raising.
        """
        if not isinstance(data, dict):
            return None
        size_id = data.get("sizeId")
        quantity = data.get("quantity")
        product_id = data.get("productId")
        product_name = data.get("productName")
        if not isinstance(size_id, str) or not size_id:
            return None
        # bool is an int subclass
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            return None
        if not isinstance(product_id, str) or not isinstance(product_name, str):
            return None
        return cls(
            size_id=size_id,
            quantity=quantity,
            product_id=product_id,
            product_name=product_name,
        )


@dataclass
class OrderDraft:
    """The in-progress purchase configuration."""

    product_id: str = ""
    product_name: str = ""
    selected_size: ProductSize | None = None
    quantity: int = 1
    pricing: PricingSnapshot = field(default_factory=PricingSnapshot.zero)

    def to_record(self) -> DraftRecord | None:
        if self.selected_size is None:
            return None
        return DraftRecord(
            size_id=self.selected_size.id,
            quantity=self.quantity,
            product_id=self.product_id,
            product_name=self.product_name,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "selected_size": self.selected_size.to_dict() if self.selected_size else None,
            "quantity": self.quantity,
            "pricing": self.pricing.to_dict(),
        }


@dataclass(frozen=True)
class OrderPayload:
    """Immutable snapshot of the draft handed to order submission."""

    product_id: str
    product_name: str
    size_id: str
    size_name: str
    size_index: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    shipping_method: ShippingMethod
    shipping_cost: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "size_id": self.size_id,
            "size_name": self.size_name,
            "size_index": self.size_index,
            "quantity": self.quantity,
            "unit_price": f"{self.unit_price:.2f}",
            "subtotal": f"{self.subtotal:.2f}",
            "shipping_method": self.shipping_method.value,
            "shipping_cost": f"{self.shipping_cost:.2f}",
            "total": f"{self.total:.2f}",
        }


# Models for checkout


class CheckoutStep(IntEnum):
    PERSONAL = 1
    SHIPPING = 2
    PAYMENT = 3


@dataclass
class PersonalInfo:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = PHONE_PREFIX


@dataclass
class ShippingInfo:
    address: str = ""
    apartment: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    shipping_method: str = ShippingMethod.STANDARD.value


@dataclass
class PaymentInfo:
    card_name: str = ""
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


@dataclass
class CheckoutForm:
    """Field values of the three checkout steps. Never persisted."""

    personal: PersonalInfo = field(default_factory=PersonalInfo)
    shipping: ShippingInfo = field(default_factory=ShippingInfo)
    payment: PaymentInfo = field(default_factory=PaymentInfo)

    def _groups(self) -> dict[CheckoutStep, Any]:
        return {
            CheckoutStep.PERSONAL: self.personal,
            CheckoutStep.SHIPPING: self.shipping,
            CheckoutStep.PAYMENT: self.payment,
        }

    def group(self, step: CheckoutStep) -> Any:
        return self._groups()[step]

    def step_of(self, name: str) -> CheckoutStep:
        """
        Return the step a field belongs to.

        Raises:
            UnknownFieldError: If no group has the field.
        """
        for step, group in self._groups().items():
            if name in {f.name for f in fields(group)}:
                return step
        raise UnknownFieldError(name)

    def get(self, name: str) -> str:
        return getattr(self.group(self.step_of(name)), name)

    def set(self, name: str, value: str) -> None:
        setattr(self.group(self.step_of(name)), name, value)

    @property
    def shipping_method(self) -> ShippingMethod:
        return ShippingMethod.parse(self.shipping.shipping_method)

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {
            "personal": asdict(self.personal),
            "shipping": asdict(self.shipping),
            "payment": asdict(self.payment),
        }


@dataclass
class CheckoutStepState:
    """Position of a checkout in the step sequence."""

    step: CheckoutStep = CheckoutStep.PERSONAL
    errors: dict[CheckoutStep, dict[str, str]] = field(default_factory=dict)
    completed: bool = False
    order_reference: str | None = None

    def errors_for(self, step: CheckoutStep) -> dict[str, str]:
        return self.errors.get(step, {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": int(self.step),
            "errors": dict(self.errors_for(self.step)),
            "completed": self.completed,
            "order_reference": self.order_reference,
        }


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of handing an order to the submission service."""

    ok: bool
    order_reference: str | None = None
    message: str | None = None


# Models for authentication


@dataclass(frozen=True)
class UserProfile:
    first_name: str
    last_name: str
    email: str

    def to_dict(self) -> dict[str, str]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserProfile":
        return cls(
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            email=data.get("email") or "",
        )


@dataclass(frozen=True)
class AuthSession:
    """Published authentication state."""

    is_authenticated: bool = False
    profile: UserProfile | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_authenticated": self.is_authenticated,
            "profile": self.profile.to_dict() if self.profile else None,
        }
