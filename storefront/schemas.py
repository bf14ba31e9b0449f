"""
Pydantic Schemas

Two groups of models live here:
- Checkout step models: the field set and validation rules owned by each
  step of the checkout wizard (address, payment, review) plus the card
  details required when paying by credit card
- API request/response schemas for the HTTP layer

Validation failures are converted to storefront ValidationError records
(field, message, code) so the wizard can report them inline.

Author: Khalil Bannouri
Version: 1.0.0
"""

import re
from datetime import datetime
from typing import ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from storefront.core.config import get_settings
from storefront.models import PaymentMethod, ValidationError


# =============================================================================
# CHECKOUT STEP MODELS
# =============================================================================

class StepModel(BaseModel):
    """
    Base class of the checkout step models.

    ``MESSAGES`` maps a field name to the message shown for any constraint
    failure on that field (missing, too short, wrong type). Messages raised
    by field validators are shown as-is.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    MESSAGES: ClassVar[dict[str, str]] = {}


class AddressStep(StepModel):
    """Step 1: delivery address."""

    MESSAGES: ClassVar[dict[str, str]] = {
        "full_name": "Full name is required.",
        "address_line1": "Address is required.",
        "city": "City is required.",
        "postal_code": "Postal code is required.",
        "country": "Country is required.",
        "phone_number": "Phone number is required.",
    }

    full_name: str = Field(..., min_length=2, examples=["John Doe"])
    address_line1: str = Field(..., min_length=5, examples=["123 Main St"])
    address_line2: Optional[str] = Field(None, examples=["Apartment, suite, etc."])
    city: str = Field(..., min_length=2, examples=["Foodville"])
    postal_code: str = Field(..., min_length=3, examples=["F00D4P"])
    country: str = Field(..., min_length=2, examples=["US"])
    phone_number: str = Field(..., min_length=7, examples=["+1 (555) 123-4567"])
    save_address: bool = False

    @field_validator("postal_code")
    @classmethod
    def validate_postal_code(cls, v: str) -> str:
        if not re.match(r"^\S+$", v):
            raise ValueError("Postal code cannot contain spaces.")
        return v

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        v = v.upper()
        if v not in get_settings().supported_countries_list:
            raise ValueError("We do not deliver to this country yet.")
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not re.match(r"^\+?[0-9\s\-()]+$", v):
            raise ValueError("Invalid phone number format.")
        return v


class PaymentStep(StepModel):
    """Step 2: payment method. Card fields are optional at this step."""

    MESSAGES: ClassVar[dict[str, str]] = {
        "payment_method": "Please select a payment method.",
    }

    payment_method: PaymentMethod
    card_name: Optional[str] = None
    card_number: Optional[str] = None
    card_expiry: Optional[str] = Field(None, examples=["MM/YY"])
    card_cvc: Optional[str] = None
    save_payment_info: bool = False


class ReviewStep(StepModel):
    """Step 3: review and consent."""

    MESSAGES: ClassVar[dict[str, str]] = {
        "agree_to_terms": "You must agree to the terms and conditions to place the order.",
    }

    agree_to_terms: bool

    @field_validator("agree_to_terms")
    @classmethod
    def validate_agreement(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must agree to the terms and conditions to place the order.")
        return v


class CardDetails(StepModel):
    """Card details, required at submission when paying by credit card."""

    MESSAGES: ClassVar[dict[str, str]] = {
        "card_name": "Cardholder name is required.",
        "card_number": "Card number is required.",
        "card_expiry": "Card expiry is required.",
        "card_cvc": "Security code is required.",
    }

    card_name: str = Field(..., min_length=2)
    card_number: str = Field(..., min_length=1)
    card_expiry: str = Field(..., min_length=1)
    card_cvc: str = Field(..., min_length=1)

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: str) -> str:
        digits = re.sub(r"[\s-]", "", v)
        if not re.match(r"^\d{12,19}$", digits):
            raise ValueError("Invalid card number.")
        return digits

    @field_validator("card_expiry")
    @classmethod
    def validate_expiry(cls, v: str) -> str:
        if not re.match(r"^(0[1-9]|1[0-2])/\d{2}$", v):
            raise ValueError("Expiry must be in MM/YY format.")
        return v

    @field_validator("card_cvc")
    @classmethod
    def validate_cvc(cls, v: str) -> str:
        if not re.match(r"^\d{3,4}$", v):
            raise ValueError("Invalid security code.")
        return v


def validate_step(model: type[StepModel], data: dict) -> list[ValidationError]:
    """
    Validate ``data`` against a step model.

    Only the model's own fields are looked at; the result holds at most one
    error per field, in field declaration order.

    Returns:
        list[ValidationError]: Empty when the data is valid
    """
    try:
        model.model_validate(data)
    except PydanticValidationError as exc:
        errors: dict[str, ValidationError] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "__root__"
            if field in errors:
                continue
            if err["type"] == "value_error":
                message = str(err["ctx"]["error"])
            else:
                message = model.MESSAGES.get(field, err["msg"])
            errors[field] = ValidationError(field=field, message=message, code=err["type"])

        order = list(model.model_fields)
        return sorted(
            errors.values(),
            key=lambda e: order.index(e.field) if e.field in order else len(order),
        )
    return []


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class AddCartItemRequest(BaseModel):
    """Add a dish (optionally customized) to the cart."""
    dish_id: str = Field(..., min_length=1, examples=["d3"])
    quantity: int = Field(default=1, examples=[2])
    selections: dict[str, Union[str, list[str]]] = Field(
        default_factory=dict,
        examples=[{"c1": "c1o2", "c2": "c2o3", "c3": ["c3o1"]}],
    )


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(..., examples=[3])


class CheckoutFieldsUpdate(BaseModel):
    """Partial update of the checkout form. Only fields sent are applied."""
    full_name: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None
    save_address: Optional[bool] = None
    payment_method: Optional[PaymentMethod] = None
    card_name: Optional[str] = None
    card_number: Optional[str] = None
    card_expiry: Optional[str] = None
    card_cvc: Optional[str] = None
    save_payment_info: Optional[bool] = None
    agree_to_terms: Optional[bool] = None


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=200)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    submission_service: str
    order_source: str
    timestamp: datetime
