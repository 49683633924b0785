"""Invoice arithmetic.

``calculate_invoice`` turns the raw line items posted by the front desk into
normalized items plus ``subtotal``, ``discount_amount`` and ``total_amount``.
It touches no database state so the same rules apply to invoice creation and
invoice edits.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional

from ..errors import ValidationError

CENTS = Decimal("0.01")
ZERO = Decimal("0")
# Largest value a NUMERIC(10, 2) money column holds
MAX_AMOUNT = Decimal("99999999.99")


def to_decimal(value) -> Decimal:
    """Lenient number parsing: anything missing, unparseable or non-finite is 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not number.is_finite():
        return ZERO
    return number


def check_amount(value: Decimal, field_name: str) -> Decimal:
    if abs(value) > MAX_AMOUNT:
        raise ValidationError(f"{field_name} is too large.")
    return value


def money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class LineItem:
    service_name: str
    quantity: Decimal
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass
class InvoiceTotals:
    items: List[LineItem] = field(default_factory=list)
    subtotal: Decimal = ZERO
    discount_type: str = "none"
    discount_value: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    computed_total: Decimal = ZERO
    total_overridden: bool = False


def normalize_items(raw_items) -> List[LineItem]:
    """Default quantity to 1, price to 0 and the label to "Item <n>".

    Lines with a non-positive quantity are dropped.
    """
    normalized = []
    for index, raw in enumerate(raw_items or []):
        if not isinstance(raw, dict):
            continue
        quantity = raw.get("quantity")
        quantity = check_amount(to_decimal(1 if quantity is None else quantity), "Item quantity")

        unit_price = raw.get("unit_price")
        if unit_price is None:
            unit_price = raw.get("price")
        unit_price = check_amount(to_decimal(0 if unit_price is None else unit_price), "Item price")

        label = str(raw.get("service_name") or raw.get("service") or "").strip()
        if not label:
            label = f"Item {index + 1}"

        if quantity <= 0:
            continue
        normalized.append(LineItem(label, quantity, unit_price))
    return normalized


def compute_discount(subtotal: Decimal, discount_type: str, discount_value: Decimal) -> Decimal:
    if discount_type == "percent":
        amount = subtotal * (discount_value / Decimal(100))
    elif discount_type == "flat":
        amount = discount_value
    else:
        amount = ZERO
    # never more than the subtotal, never negative
    return min(max(amount, ZERO), max(subtotal, ZERO))


def calculate_invoice(
    items,
    discount_type: Optional[str] = None,
    discount_value=None,
    subtotal=None,
    total_amount=None,
    allow_total_override: bool = True,
) -> InvoiceTotals:
    """Compute invoice totals.

    ``subtotal`` and ``total_amount`` are the caller-supplied values. The
    caller's subtotal is only used when the items add up to nothing. A positive
    caller total replaces the computed one when ``allow_total_override`` is set;
    otherwise it is ignored and ``total_overridden`` stays False.
    """
    normalized = normalize_items(items)

    items_subtotal = sum((item.line_total for item in normalized), ZERO)
    resolved_subtotal = items_subtotal if items_subtotal > 0 else to_decimal(subtotal)
    resolved_subtotal = money(check_amount(resolved_subtotal, "Invoice subtotal"))

    d_type = discount_type if discount_type in ("percent", "flat") else "none"
    # a discount never exceeds the subtotal, so oversized values are capped
    d_value = max(min(to_decimal(discount_value), MAX_AMOUNT), -MAX_AMOUNT)
    d_amount = money(compute_discount(resolved_subtotal, d_type, d_value))

    computed_total = max(ZERO, resolved_subtotal - d_amount)
    caller_total = to_decimal(total_amount)
    if allow_total_override:
        check_amount(caller_total, "Invoice total")
    overridden = bool(allow_total_override and caller_total > 0)

    return InvoiceTotals(
        items=normalized,
        subtotal=resolved_subtotal,
        discount_type=d_type,
        discount_value=money(d_value),
        discount_amount=d_amount,
        total_amount=money(caller_total) if overridden else computed_total,
        computed_total=computed_total,
        total_overridden=overridden,
    )
