from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple

from theatre_pos.errors import ValidationError

CENT = Decimal("0.01")


def to_decimal(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    # go through str so floats don't bring binary artifacts along
    return Decimal(str(x if x is not None else 0))


def money(x) -> Decimal:
    return to_decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


class Totals(NamedTuple):
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def line_total(quantity: int, unit_price) -> Decimal:
    if quantity < 0:
        raise ValidationError("quantity must not be negative", {"quantity": quantity})
    price = to_decimal(unit_price)
    if price < 0:
        raise ValidationError("unit price must not be negative", {"unit_price": str(price)})
    return money(price * quantity)


def compute_totals(lines: Iterable[tuple[int, Decimal]], tax_rate, discount=0) -> Totals:
    """
    subtotal = sum(qty * unit_price), tax = subtotal * rate,
    total = subtotal + tax - discount; each rounded half-up to 2dp.
    """
    rate = to_decimal(tax_rate)
    if rate < 0 or rate > 1:
        raise ValidationError("tax rate must be a fraction between 0 and 1", {"tax_rate": str(rate)})
    disc = money(discount)
    if disc < 0:
        raise ValidationError("discount must not be negative", {"discount": str(disc)})

    subtotal = sum((line_total(q, p) for q, p in lines), Decimal("0.00"))
    tax = money(subtotal * rate)
    if disc > subtotal + tax:
        raise ValidationError(
            "discount exceeds order amount",
            {"discount": str(disc), "max": str(subtotal + tax)},
        )
    return Totals(subtotal=money(subtotal), tax=tax, discount=disc, total=money(subtotal + tax - disc))


def to_minor_units(amount) -> int:
    """Amount in paise/cents for the gateway."""
    return int((money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))
