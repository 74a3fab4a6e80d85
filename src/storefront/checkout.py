"""Three-step checkout state machine."""

import logging
from typing import Any

from .draft import OrderDraftController
from .errors import NoSizeSelectedError
from .formatting import normalize_field
from .models import (
    CheckoutForm,
    CheckoutStep,
    CheckoutStepState,
    PricingSnapshot,
    ShippingMethod,
    SubmissionResult,
)
from .ports import OrderSubmitter
from .validation import CardValidationPolicy, validate_step

logger = logging.getLogger(__name__)

SUBMIT_ERROR_KEY = "submit"
SUBMIT_ERROR_MESSAGE = "Failed to process order. Please try again."


class CheckoutStepMachine:
    """
    Sequences personal info -> shipping -> payment -> completed.

    advance() validates only the current step and moves forward on success.
    retreat() moves back without validating anything. The machine reaches
    the completed state only after the submitter accepts the order.
    """

    def __init__(
        self,
        draft: OrderDraftController,
        submitter: OrderSubmitter,
        card_policy: CardValidationPolicy = CardValidationPolicy.PRESENCE,
    ):
        self.draft = draft
        self.submitter = submitter
        self.card_policy = card_policy
        self.form = CheckoutForm()
        self.state = CheckoutStepState()
        self._submitting = False

    @property
    def step(self) -> CheckoutStep:
        return self.state.step

    @property
    def errors(self) -> dict[str, str]:
        """Errors of the current step."""
        return self.state.errors_for(self.state.step)

    @property
    def submitting(self) -> bool:
        return self._submitting

    def update_field(self, name: str, value: str) -> str:
        """
        Normalize and store a field value, clearing its pending error.

        Edits are ignored once the order completed and while it is being
        submitted.

        Returns:
            The stored (normalized) value.

        Raises:
            UnknownFieldError: If no step has a field with that name.
            InvalidShippingMethodError: For an unknown shipping method.
        """
        step = self.form.step_of(name)
        if self.state.completed or self._submitting:
            return self.form.get(name)

        if name == "shipping_method":
            value = ShippingMethod.parse(value).value
        else:
            value = normalize_field(name, value)

        self.form.set(name, value)
        step_errors = self.state.errors.get(step)
        if step_errors:
            step_errors.pop(name, None)
        return value

    def update_fields(self, values: dict[str, str]) -> None:
        for name, value in values.items():
            self.update_field(name, value)

    def totals(self) -> PricingSnapshot:
        return self.draft.totals(self.form.shipping_method)

    def _validate_current(self) -> bool:
        errors = validate_step(self.form, self.state.step, self.card_policy)
        self.state.errors[self.state.step] = errors
        return not errors

    async def advance(self) -> bool:
        """
        Validate the current step and move forward.

        On the payment step a valid form is submitted exactly once. Returns
        True when the step changed (or the order completed).
        """
        if self.state.completed or self._submitting:
            return False

        if not self._validate_current():
            return False

        if self.state.step < CheckoutStep.PAYMENT:
            self.state.step = CheckoutStep(self.state.step + 1)
            return True

        return await self._submit()

    def _build_submission(self) -> dict[str, Any]:
        payload = self.draft.to_order_payload(self.form.shipping_method)
        submission = self.form.to_dict()
        submission["order"] = payload.to_dict()
        return submission

    async def _submit(self) -> bool:
        self._submitting = True
        try:
            submission = self._build_submission()
            result = await self.submitter.submit_order(submission)
        except NoSizeSelectedError:
            logger.warning("Order draft lost its size before submission")
            result = SubmissionResult(ok=False)
        except Exception as e:
            logger.warning(f"Order submission failed: {e}")
            result = SubmissionResult(ok=False)
        finally:
            self._submitting = False

        if not result.ok:
            if result.message:
                logger.warning(f"Order rejected: {result.message}")
            self.state.errors[CheckoutStep.PAYMENT] = {SUBMIT_ERROR_KEY: SUBMIT_ERROR_MESSAGE}
            return False

        self.state.completed = True
        self.state.order_reference = result.order_reference
        logger.info(f"Order submitted: {result.order_reference}")
        self.draft.clear()
        return True

    def retreat(self) -> bool:
        """Go back one step, dropping the errors of the step being left."""
        if (
            self.state.completed
            or self._submitting
            or self.state.step == CheckoutStep.PERSONAL
        ):
            return False

        self.state.errors.pop(self.state.step, None)
        self.state.step = CheckoutStep(self.state.step - 1)
        return True

    def to_dict(self) -> dict[str, Any]:
        result = self.state.to_dict()
        result["submitting"] = self._submitting
        result["form"] = self.form.to_dict()
        result["totals"] = self.totals().to_dict()
        return result
