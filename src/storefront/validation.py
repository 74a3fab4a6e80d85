"""Per-step checkout validators.

Validators are pure: they read a field group and return a field -> message
mapping. An empty mapping means the step is valid.
"""

from datetime import date
from enum import Enum

from .formatting import digits_only
from .models import CheckoutForm, CheckoutStep, PaymentInfo

REQUIRED_FIELDS: dict[CheckoutStep, list[tuple[str, str]]] = {
    CheckoutStep.PERSONAL: [
        ("first_name", "First name is required"),
        ("last_name", "Last name is required"),
        ("email", "Email is required"),
        ("phone", "Phone number is required"),
    ],
    CheckoutStep.SHIPPING: [
        ("address", "Address is required"),
        ("city", "City is required"),
        ("state", "State is required"),
        ("zip_code", "ZIP code is required"),
    ],
    CheckoutStep.PAYMENT: [
        ("card_name", "Name on card is required"),
        ("card_number", "Card number is required"),
        ("expiry_date", "Expiry date is required"),
        ("cvv", "CVV is required"),
    ],
}


class CardValidationPolicy(str, Enum):
    """How much the payment step checks beyond presence."""

    PRESENCE = "presence"
    STRICT = "strict"


def check_required(form: CheckoutForm, step: CheckoutStep) -> dict[str, str]:
    """Report every required field of the step that is blank after trimming."""
    group = form.group(step)
    errors: dict[str, str] = {}
    for name, message in REQUIRED_FIELDS[step]:
        if not getattr(group, name).strip():
            errors[name] = message
    return errors


def luhn_valid(number: str) -> bool:
    digits = [int(d) for d in digits_only(number)]
    if not digits:
        return False
    checksum = 0
    for i, digit in enumerate(reversed(digits)):
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        checksum += digit
    return checksum % 10 == 0


def check_card_format(payment: PaymentInfo, today: date | None = None) -> dict[str, str]:
    """Well-formedness checks for card fields that are already present."""
    today = today or date.today()
    errors: dict[str, str] = {}

    number = digits_only(payment.card_number)
    if number and (not 13 <= len(number) <= 19 or not luhn_valid(number)):
        errors["card_number"] = "Card number is invalid"

    expiry = digits_only(payment.expiry_date)
    if expiry:
        if len(expiry) != 4 or not 1 <= int(expiry[:2]) <= 12:
            errors["expiry_date"] = "Expiry date must be MM/YY"
        else:
            month, year = int(expiry[:2]), 2000 + int(expiry[2:])
            if (year, month) < (today.year, today.month):
                errors["expiry_date"] = "Card has expired"

    cvv = digits_only(payment.cvv)
    if cvv and len(cvv) not in (3, 4):
        errors["cvv"] = "CVV must be 3 or 4 digits"

    return errors


def validate_step(
    form: CheckoutForm,
    step: CheckoutStep,
    card_policy: CardValidationPolicy = CardValidationPolicy.PRESENCE,
    today: date | None = None,
) -> dict[str, str]:
    """Return the validation errors of one step."""
    errors = check_required(form, step)
    if step == CheckoutStep.PAYMENT and card_policy == CardValidationPolicy.STRICT:
        for name, message in check_card_format(form.payment, today).items():
            errors.setdefault(name, message)
    return errors
