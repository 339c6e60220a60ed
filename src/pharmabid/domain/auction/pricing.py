"""Reference-price resolution and discount arithmetic."""

from __future__ import annotations

from typing import Final

from pharmabid.domain.errors import ValidationError

MAX_MRP: Final[float] = 1_000_000.0
# class D margin
DEFAULT_MARGIN_RATE: Final[float] = 6.0


def _positive(value: float | None) -> float | None:
    return value if value is not None and value > 0 else None


def resolve_mrp(
    *,
    product_name: str,
    explicit: float | None,
    catalog: float | None,
    fallback: float | None = None,
) -> float:
    """Pick the reference price: explicit, then catalog, then fallback.

    Only strictly positive values qualify at each step.
    """

    for candidate in (explicit, catalog, fallback):
        resolved = _positive(candidate)
        if resolved is not None:
            return resolved
    raise ValidationError(
        f"MRP is required for {product_name}. "
        "Please provide MRP or ensure the product has MRP set in inventory."
    )


def validate_mrp(value: float, *, maximum: float = MAX_MRP) -> float:
    if value <= 0:
        raise ValidationError("MRP must be greater than 0")
    if value > maximum:
        raise ValidationError(f"MRP cannot exceed {maximum:,.0f}")
    return value


def final_price(mrp: float, discount_percent: float) -> float:
    return mrp * (1 - discount_percent / 100)


def order_total(quantity: int, mrp: float, discount_percent: float) -> float:
    return quantity * final_price(mrp, discount_percent)


def retailer_discount(
    discount_percent: float, margin_rate: float = DEFAULT_MARGIN_RATE
) -> float:
    """Discount shown to retailers once the marketplace margin is taken out."""

    return max(0.0, discount_percent - discount_percent * margin_rate / 100)


def retailer_price(
    mrp: float, discount_percent: float, margin_rate: float = DEFAULT_MARGIN_RATE
) -> float:
    return mrp * (1 - retailer_discount(discount_percent, margin_rate) / 100)
