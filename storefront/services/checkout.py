"""
Checkout Wizard

Three-step checkout over a single form record:

    ADDRESS (1) -> PAYMENT (2) -> REVIEW (3) -> submit

Each step owns a pydantic model with its field set and rules. ``next()``
validates only the current step's fields; ``back()`` never validates and
never clears anything. Submission is enabled only from the review step once
the whole form is valid, and runs as a single asynchronous operation:

    EDITING -> SUBMITTING -> SUBMITTED
                          -> SUBMIT_FAILED -> SUBMITTING (retry)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import re
from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal
from typing import Any, Optional, Union

from storefront.core.config import Settings
from storefront.models import (
    Amount,
    CheckoutStep,
    LineItem,
    PaymentMethod,
    PriceBreakdown,
    ValidationError,
    WizardState,
    ZERO,
    to_money,
)
from storefront.schemas import (
    AddressStep,
    CardDetails,
    PaymentStep,
    ReviewStep,
    StepModel,
    validate_step,
)
from storefront.services.cart import CartStore
from storefront.services.pricing import PricingEngine
from storefront.services.submission.base import (
    BaseOrderSubmissionService,
    OrderSubmission,
    SubmissionResult,
)

logger = logging.getLogger(__name__)


# =============================================================================
# FORM & STEP DEFINITIONS
# =============================================================================

@dataclass
class CheckoutForm:
    """The checkout form record shared by all steps."""
    full_name: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""
    phone_number: str = ""
    save_address: bool = False
    payment_method: Optional[Union[PaymentMethod, str]] = None
    card_name: str = ""
    card_number: str = ""
    card_expiry: str = ""
    card_cvc: str = ""
    save_payment_info: bool = False
    agree_to_terms: bool = False

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StepDefinition:
    """
    One variant of the wizard: a step, its title and the model owning its fields.
    """
    step: CheckoutStep
    title: str
    model: type[StepModel]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(self.model.model_fields)

    def validate(self, form: CheckoutForm) -> list[ValidationError]:
        data = form.to_dict()
        return validate_step(self.model, {name: data[name] for name in self.field_names})


STEPS: dict[CheckoutStep, StepDefinition] = {
    CheckoutStep.ADDRESS: StepDefinition(CheckoutStep.ADDRESS, "Delivery Address", AddressStep),
    CheckoutStep.PAYMENT: StepDefinition(CheckoutStep.PAYMENT, "Payment Method", PaymentStep),
    CheckoutStep.REVIEW: StepDefinition(CheckoutStep.REVIEW, "Review & Place Order", ReviewStep),
}

CARD_DETAILS = StepDefinition(CheckoutStep.PAYMENT, "Card Details", CardDetails)

EMPTY_CART_MESSAGE = "Please add items to your cart before proceeding to checkout."


def _coerce_payment_method(value: Any) -> Any:
    """Known values become PaymentMethod; others stay as entered for the payment step to reject."""
    for method in PaymentMethod:
        if value == method:
            return method
    return value


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class StepResult:
    """
    Outcome of a navigation action.

    Attributes:
        success: Whether the action went through
        step: Current step after the action
        errors: Field errors of the step (empty on success)
        scroll_to_top: Presentation hint, set whenever the step changed
    """
    success: bool
    step: CheckoutStep
    errors: tuple[ValidationError, ...] = ()
    scroll_to_top: bool = False

    @property
    def message(self) -> Optional[str]:
        """Message of the first failing field."""
        return self.errors[0].message if self.errors else None


@dataclass
class SubmissionOutcome:
    """
    Outcome of ``CheckoutWizard.submit()``.

    ``accepted`` is False when submit was not enabled: nothing happened and
    ``blockers`` explains why.
    """
    accepted: bool
    success: bool
    state: WizardState
    order_id: Optional[str] = None
    breakdown: Optional[PriceBreakdown] = None
    error_message: Optional[str] = None
    blockers: list[ValidationError] = field(default_factory=list)


# =============================================================================
# WIZARD
# =============================================================================

class CheckoutWizard:
    """
    Multi-step checkout state machine.

    Example:
        >>> wizard = CheckoutWizard(cart, submission_service)
        >>> wizard.update(full_name="Jane Doe", address_line1="123 Main St", ...)
        >>> wizard.next().success
        True
        >>> outcome = await wizard.submit()
    """

    VALID_TRANSITIONS = {
        WizardState.EDITING: {WizardState.SUBMITTING},
        WizardState.SUBMITTING: {WizardState.SUBMITTED, WizardState.SUBMIT_FAILED},
        WizardState.SUBMIT_FAILED: {WizardState.SUBMITTING, WizardState.EDITING},
        WizardState.SUBMITTED: set(),
    }

    def __init__(
        self,
        cart: CartStore,
        submission_service: BaseOrderSubmissionService,
        pricing: Optional[PricingEngine] = None,
        discount: Amount = ZERO,
        delivery_fee: Amount = ZERO,
        tax_rate: Amount = ZERO,
        restaurant_name: str = "",
    ):
        self._cart = cart
        self._submission_service = submission_service
        self._pricing = pricing or PricingEngine()
        self.discount = to_money(discount)
        self.delivery_fee = to_money(delivery_fee)
        self.tax_rate = Decimal(str(tax_rate))
        self.restaurant_name = restaurant_name

        self.form = CheckoutForm()
        self._step = CheckoutStep.ADDRESS
        self._state = WizardState.EDITING
        self.last_error: Optional[str] = None
        self.confirmation: Optional[SubmissionResult] = None

    @classmethod
    def from_settings(
        cls,
        cart: CartStore,
        submission_service: BaseOrderSubmissionService,
        settings: Settings,
    ) -> "CheckoutWizard":
        """Build a wizard priced with the configured discount, fee and tax rate."""
        return cls(
            cart,
            submission_service,
            discount=settings.default_discount,
            delivery_fee=settings.delivery_fee,
            tax_rate=settings.tax_rate,
            restaurant_name=settings.restaurant_name,
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def current_step(self) -> CheckoutStep:
        return self._step

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def step_definition(self) -> StepDefinition:
        return STEPS[self._step]

    @property
    def is_busy(self) -> bool:
        return self._state == WizardState.SUBMITTING

    def _transition(self, target: WizardState) -> None:
        if target not in self.VALID_TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Invalid checkout transition: {self._state.value} -> {target.value}"
            )
        logger.info(f"Checkout: {self._state.value} -> {target.value}")
        self._state = target

    def _can_edit(self) -> bool:
        return self._state not in (WizardState.SUBMITTING, WizardState.SUBMITTED)

    def form_data(self) -> dict[str, Any]:
        return self.form.to_dict()

    # =========================================================================
    # EDITING & NAVIGATION
    # =========================================================================

    def update(self, **values: Any) -> bool:
        """
        Set form fields.

        Returns:
            bool: False (nothing changed) while submitting or after submission

        Raises:
            KeyError: If a field name is not part of the checkout form
        """
        unknown = set(values) - CheckoutForm.field_names()
        if unknown:
            raise KeyError(f"Unknown checkout fields: {sorted(unknown)}")

        if not self._can_edit():
            logger.warning(f"Checkout: edit ignored while {self._state.value}")
            return False

        if "payment_method" in values:
            values["payment_method"] = _coerce_payment_method(values["payment_method"])

        for name, value in values.items():
            setattr(self.form, name, value)
        return True

    def next(self) -> StepResult:
        """Validate the current step's fields and move forward if they pass."""
        if not self._can_edit() or self._step == CheckoutStep.REVIEW:
            return StepResult(success=False, step=self._step)

        errors = self.step_definition.validate(self.form)
        if errors:
            logger.info(
                f"Checkout: step {self._step.value} has {len(errors)} invalid field(s), "
                f"first: {errors[0].field}"
            )
            return StepResult(success=False, step=self._step, errors=tuple(errors))

        self._step = CheckoutStep(self._step + 1)
        self._leave_failed_state()
        logger.info(f"Checkout: advanced to step {self._step.value} ({self.step_definition.title})")
        return StepResult(success=True, step=self._step, scroll_to_top=True)

    def back(self) -> StepResult:
        """Move one step back. Never validates and never clears entered data."""
        if not self._can_edit():
            return StepResult(success=False, step=self._step)

        if self._step == CheckoutStep.ADDRESS:
            return StepResult(success=True, step=self._step)

        self._step = CheckoutStep(self._step - 1)
        self._leave_failed_state()
        logger.info(f"Checkout: back to step {self._step.value}")
        return StepResult(success=True, step=self._step, scroll_to_top=True)

    def _leave_failed_state(self) -> None:
        if self._state == WizardState.SUBMIT_FAILED:
            self._transition(WizardState.EDITING)
            self.last_error = None

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def order_summary(self) -> PriceBreakdown:
        """Price the current cart with this checkout's discount, fee and tax."""
        return self._pricing.compute(
            self._cart.snapshot(),
            discount=self.discount,
            delivery_fee=self.delivery_fee,
            tax_rate=self.tax_rate,
        )

    def submit_blockers(self) -> list[ValidationError]:
        """Everything that currently keeps the submit action disabled."""
        if self._state == WizardState.SUBMITTING:
            return [ValidationError("__form__", "Your order is being placed.", "busy")]
        if self._state == WizardState.SUBMITTED:
            return [ValidationError("__form__", "This order has already been placed.", "submitted")]
        if self._step != CheckoutStep.REVIEW:
            return [ValidationError("__form__", "Complete the previous steps first.", "wrong_step")]

        blockers: list[ValidationError] = []
        for definition in STEPS.values():
            blockers.extend(definition.validate(self.form))
        if self.form.payment_method == PaymentMethod.CREDIT_CARD:
            blockers.extend(CARD_DETAILS.validate(self.form))
        if self._cart.is_empty:
            blockers.append(ValidationError("cart", EMPTY_CART_MESSAGE, "empty_cart"))
        return blockers

    @property
    def can_submit(self) -> bool:
        return not self.submit_blockers()

    async def submit(self) -> SubmissionOutcome:
        """
        Place the order.

        Inert (no transition, no service call) when submit is disabled.
        A failed submission leaves the wizard on the review step in
        SUBMIT_FAILED; calling ``submit()`` again retries. On success the
        ordered lines leave the cart; anything added meanwhile stays.
        """
        blockers = self.submit_blockers()
        if blockers:
            logger.info(f"Checkout: submit disabled ({blockers[0].code})")
            return SubmissionOutcome(
                accepted=False,
                success=False,
                state=self._state,
                blockers=blockers,
            )

        self._transition(WizardState.SUBMITTING)
        self.last_error = None
        ordered = self._cart.snapshot()
        breakdown = self.order_summary()

        try:
            result = await self._submission_service.submit_order(
                self._build_submission(ordered, breakdown)
            )
        except Exception as e:
            logger.exception(f"Checkout: submission raised: {e}")
            result = SubmissionResult(
                success=False,
                error_message="We could not place your order. Please try again.",
                error_code="submission_error",
            )

        if not result.success:
            self.last_error = result.error_message or "Order submission failed."
            self._transition(WizardState.SUBMIT_FAILED)
            return SubmissionOutcome(
                accepted=True,
                success=False,
                state=self._state,
                breakdown=breakdown,
                error_message=self.last_error,
            )

        self.confirmation = result
        self._transition(WizardState.SUBMITTED)
        self._remove_ordered_items(ordered)
        logger.info(f"Checkout: order {result.order_id} placed (${breakdown.total:.2f})")
        return SubmissionOutcome(
            accepted=True,
            success=True,
            state=self._state,
            order_id=result.order_id,
            breakdown=breakdown,
        )

    def _remove_ordered_items(self, ordered: tuple[LineItem, ...]) -> None:
        # Lines added while the order was being placed stay in the cart.
        for item in ordered:
            current = self._cart.get(item.line_item_id)
            if current is None:
                continue
            if current.quantity > item.quantity:
                self._cart.set_quantity(item.line_item_id, current.quantity - item.quantity)
            else:
                self._cart.remove_item(item.line_item_id)

    def _build_submission(
        self,
        ordered: tuple[LineItem, ...],
        breakdown: PriceBreakdown,
    ) -> OrderSubmission:
        form = self.form
        address = ", ".join(
            part.strip()
            for part in (
                form.address_line1,
                form.address_line2,
                form.city,
                form.postal_code,
                form.country,
            )
            if part and part.strip()
        )
        card_last_four = None
        if form.payment_method == PaymentMethod.CREDIT_CARD:
            card_last_four = re.sub(r"\D", "", form.card_number)[-4:] or None

        return OrderSubmission(
            customer_name=form.full_name.strip(),
            delivery_address=address,
            phone_number=form.phone_number.strip(),
            payment_method=form.payment_method,
            items=tuple((item.name, item.quantity) for item in ordered),
            breakdown=breakdown,
            restaurant_name=self.restaurant_name,
            card_last_four=card_last_four,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serializable view of the wizard for the presentation layer."""
        data = self.form_data()
        if isinstance(data["payment_method"], PaymentMethod):
            data["payment_method"] = data["payment_method"].value
        # Never echo card secrets back.
        data["card_number"] = "****" + data["card_number"][-4:] if data["card_number"] else ""
        data["card_cvc"] = "***" if data["card_cvc"] else ""
        return {
            "current_step": self._step.value,
            "step_title": self.step_definition.title,
            "state": self._state.value,
            "can_submit": self.can_submit,
            "last_error": self.last_error,
            "order_id": self.confirmation.order_id if self.confirmation else None,
            "form": data,
            "summary": self.order_summary().to_dict(),
        }
