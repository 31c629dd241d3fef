from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from cubepos.time_utils import parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Upper bounds keep line totals and tenders inside a 64-bit INTEGER column
MAX_QUANTITY = 100_000
MAX_AMOUNT_CENTS = 99_999_999_999

# Largest value a NUMERIC(10, 2) money column holds
MAX_MONEY = Decimal("99999999.99")

# SQLite INTEGER is a signed 64-bit value
MAX_INT = 2**63 - 1

MIN_IDEMPOTENCY_KEY_LENGTH = 8

SALE_PAYMENT_METHODS = {"CASH", "CARD", "BANK_TRANSFER", "UPI", "OTHER"}
RENTAL_PAYMENT_METHODS = {"BANK_TRANSFER", "CASH", "CARD", "CHEQUE"}


class CubePosError(Exception):
    """Base for classified service errors."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(CubePosError, ValueError):
    """400-level input problem. Nothing was mutated."""
    status_code = 400


class NotFoundError(CubePosError):
    """404: referenced rental, variant or sale does not exist."""
    status_code = 404


class ConflictError(CubePosError, ValueError):
    """409-level business rule conflict (stock shortfall, duplicate key race)."""
    status_code = 409


class InsufficientStockError(ConflictError):
    def __init__(self, variant_id: int, requested: int, available: int | None = None):
        super().__init__(
            f"Insufficient stock for variant {variant_id}",
            details={
                "variant_id": variant_id,
                "requested_quantity": requested,
                "available": available,
            },
        )
        self.variant_id = variant_id


class DeliveryError(CubePosError):
    """Notifier failure. Absorbed by the notification layer, never returned to callers."""
    status_code = 502


class InternalError(CubePosError):
    """Unexpected store or transaction failure; the transaction was rolled back."""
    status_code = 500


# =============================================================================
# COERCION
# =============================================================================

def _in_range(field: str, value: int) -> int:
    if abs(value) > MAX_INT:
        raise ValidationError(f"{field} is out of range")
    return value


def _coerce_int(field: str, value: Any) -> int:
    """Strict integer coercion: rejects floats, bools and scientific notation."""
    if value is None:
        raise ValidationError(f"{field} is required")
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return _in_range(field, value)
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            number = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
        return _in_range(field, number)
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _optional_int(field: str, value: Any) -> int | None:
    if value is None:
        return None
    return _coerce_int(field, value)


def _coerce_money(field: str, value: Any) -> Decimal:
    """Parse a dollar amount to a 2dp Decimal (floats go through str to avoid binary noise)."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _coerce_datetime(field: str, value: Any, *, required: bool = True) -> datetime | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    if dt is None and required:
        raise ValidationError(f"{field} is required")
    return dt


def _coerce_code(field: str, value: Any, default: str = "") -> str:
    """Upper-cased code string (payment method, currency)."""
    if value is None or value == "":
        value = default
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.upper().strip()


def _optional_str(value: Any, max_length: int | None = None, field: str = "") -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text or None


def _require_dict(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


# =============================================================================
# CHECKOUT
# =============================================================================

@dataclass(frozen=True)
class CheckoutItem:
    variant_id: int
    quantity: int
    unit_price_cents: int
    discount_cents: int = 0
    tax_cents: int = 0


@dataclass(frozen=True)
class CheckoutPayment:
    method: str
    amount_cents: int
    provider: str | None = None
    provider_intent: str | None = None


@dataclass(frozen=True)
class CheckoutRequest:
    idempotency_key: str
    tenant_id: int
    items: tuple[CheckoutItem, ...]
    payments: tuple[CheckoutPayment, ...]
    cashier_user_id: int | None = None
    currency: str = "AUD"


def _parse_checkout_item(index: int, raw: Any) -> CheckoutItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")
    prefix = f"items[{index}]"
    item = CheckoutItem(
        variant_id=_coerce_int(f"{prefix}.variant_id", raw.get("variant_id")),
        quantity=_coerce_int(f"{prefix}.quantity", raw.get("quantity")),
        unit_price_cents=_coerce_int(f"{prefix}.unit_price_cents", raw.get("unit_price_cents")),
        discount_cents=_coerce_int(f"{prefix}.discount_cents", raw.get("discount_cents", 0)),
        tax_cents=_coerce_int(f"{prefix}.tax_cents", raw.get("tax_cents", 0)),
    )
    if item.quantity <= 0:
        raise ValidationError(f"{prefix}.quantity must be > 0")
    if item.quantity > MAX_QUANTITY:
        raise ValidationError(f"{prefix}.quantity cannot exceed {MAX_QUANTITY}")
    if item.unit_price_cents < 0:
        raise ValidationError(f"{prefix}.unit_price_cents must be >= 0")
    if item.unit_price_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{prefix}.unit_price_cents cannot exceed {MAX_PRICE_CENTS}")
    if item.discount_cents < 0:
        raise ValidationError(f"{prefix}.discount_cents must be >= 0")
    if item.discount_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{prefix}.discount_cents cannot exceed {MAX_PRICE_CENTS}")
    if item.tax_cents < 0:
        raise ValidationError(f"{prefix}.tax_cents must be >= 0")
    if item.tax_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{prefix}.tax_cents cannot exceed {MAX_PRICE_CENTS}")
    return item


def _parse_checkout_payment(index: int, raw: Any) -> CheckoutPayment:
    if not isinstance(raw, dict):
        raise ValidationError(f"payments[{index}] must be an object")
    prefix = f"payments[{index}]"
    method = _coerce_code(f"{prefix}.method", raw.get("method"))
    if method not in SALE_PAYMENT_METHODS:
        raise ValidationError(
            f"{prefix}.method must be one of {sorted(SALE_PAYMENT_METHODS)}"
        )
    amount = _coerce_int(f"{prefix}.amount_cents", raw.get("amount_cents"))
    if amount <= 0:
        raise ValidationError(f"{prefix}.amount_cents must be > 0")
    if amount > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{prefix}.amount_cents cannot exceed {MAX_AMOUNT_CENTS}")
    return CheckoutPayment(
        method=method,
        amount_cents=amount,
        provider=_optional_str(raw.get("provider"), 64, f"{prefix}.provider"),
        provider_intent=_optional_str(raw.get("provider_intent"), 128, f"{prefix}.provider_intent"),
    )


def parse_checkout_request(payload: Any, *, default_currency: str = "AUD") -> CheckoutRequest:
    data = _require_dict(payload)

    key = data.get("idempotency_key")
    if not isinstance(key, str) or len(key.strip()) < MIN_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            f"idempotency_key must be a string of at least {MIN_IDEMPOTENCY_KEY_LENGTH} characters"
        )

    raw_items = data.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")
    raw_payments = data.get("payments")
    if not isinstance(raw_payments, list) or not raw_payments:
        raise ValidationError("payments must be a non-empty list")

    currency = _coerce_code("currency", data.get("currency"), default_currency)
    if len(currency) != 3:
        raise ValidationError("currency must be a 3-letter code")

    return CheckoutRequest(
        idempotency_key=key.strip(),
        tenant_id=_coerce_int("tenant_id", data.get("tenant_id")),
        cashier_user_id=_optional_int("cashier_user_id", data.get("cashier_user_id")),
        currency=currency,
        items=tuple(_parse_checkout_item(i, raw) for i, raw in enumerate(raw_items)),
        payments=tuple(_parse_checkout_payment(i, raw) for i, raw in enumerate(raw_payments)),
    )


# =============================================================================
# RENTALS
# =============================================================================

@dataclass(frozen=True)
class RentalAllocationRequest:
    tenant_id: int
    cube_id: int
    start_date: datetime
    end_date: datetime
    allocated_by_id: int | None = None


@dataclass(frozen=True)
class RentalPaymentRequest:
    amount: Decimal
    method: str
    received_by_id: int | None = None
    paid_at: datetime | None = None
    note: str | None = None


def parse_rental_allocation(payload: Any) -> RentalAllocationRequest:
    data = _require_dict(payload)
    request = RentalAllocationRequest(
        tenant_id=_coerce_int("tenant_id", data.get("tenant_id")),
        cube_id=_coerce_int("cube_id", data.get("cube_id")),
        start_date=_coerce_datetime("start_date", data.get("start_date")),
        end_date=_coerce_datetime("end_date", data.get("end_date")),
        allocated_by_id=_optional_int("allocated_by_id", data.get("allocated_by_id")),
    )
    if request.end_date <= request.start_date:
        raise ValidationError("end_date must be after start_date")
    return request


def parse_rental_payment(payload: Any) -> RentalPaymentRequest:
    data = _require_dict(payload)
    amount = _coerce_money("amount", data.get("amount"))
    if amount <= 0:
        raise ValidationError("amount must be > 0")
    if amount > MAX_MONEY:
        raise ValidationError(f"amount cannot exceed {MAX_MONEY}")
    method = _coerce_code("method", data.get("method"))
    if method not in RENTAL_PAYMENT_METHODS:
        raise ValidationError(f"method must be one of {sorted(RENTAL_PAYMENT_METHODS)}")
    return RentalPaymentRequest(
        amount=amount,
        method=method,
        received_by_id=_optional_int("received_by_id", data.get("received_by_id")),
        paid_at=_coerce_datetime("paid_at", data.get("paid_at"), required=False),
        note=_optional_str(data.get("note"), 500, "note"),
    )


# =============================================================================
# INVENTORY
# =============================================================================

@dataclass(frozen=True)
class VariantUpdateRequest:
    tenant_id: int
    actor_user_id: int
    price: Decimal | None = None
    stock: int | None = None


def parse_variant_update(payload: Any) -> VariantUpdateRequest:
    data = _require_dict(payload)
    price = None
    if data.get("price") is not None:
        price = _coerce_money("price", data.get("price"))
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_MONEY:
            raise ValidationError(f"price cannot exceed {MAX_MONEY}")
    stock = _optional_int("stock", data.get("stock"))
    if stock is not None and stock < 0:
        raise ValidationError("stock must be >= 0")
    if price is None and stock is None:
        raise ValidationError("price or stock is required")
    return VariantUpdateRequest(
        tenant_id=_coerce_int("tenant_id", data.get("tenant_id")),
        actor_user_id=_coerce_int("actor_user_id", data.get("actor_user_id")),
        price=price,
        stock=stock,
    )


@dataclass(frozen=True)
class ProductApprovalRequest:
    approve: bool
    actor_user_id: int


def parse_product_approval(payload: Any) -> ProductApprovalRequest:
    data = _require_dict(payload)
    approve = data.get("approve")
    if not isinstance(approve, bool):
        raise ValidationError("approve must be true or false")
    return ProductApprovalRequest(
        approve=approve,
        actor_user_id=_coerce_int("actor_user_id", data.get("actor_user_id")),
    )
