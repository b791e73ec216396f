from decimal import Decimal
import random

import pytest

from theatre_pos.errors import ValidationError
from theatre_pos.services.money import compute_totals, line_total, money, to_minor_units


def test_popcorn_pair_at_18_percent():
    t = compute_totals([(2, Decimal("150.00"))], Decimal("0.18"))
    assert t.subtotal == Decimal("300.00")
    assert t.tax == Decimal("54.00")
    assert t.discount == Decimal("0.00")
    assert t.total == Decimal("354.00")


def test_half_up_rounding_on_tax():
    # 0.25 * 0.18 = 0.045 -> 0.05
    t = compute_totals([(1, "0.25")], "0.18")
    assert t.tax == Decimal("0.05")
    assert t.total == Decimal("0.30")


def test_floats_do_not_leak_binary_error():
    assert line_total(3, 0.1) == Decimal("0.30")
    assert money(2.675) == Decimal("2.68")


def test_line_totals_sum_to_subtotal_and_total_identity():
    rng = random.Random(7)
    for _ in range(200):
        lines = [(rng.randint(0, 9), Decimal(rng.randint(0, 50000)) / 100) for _ in range(rng.randint(1, 8))]
        rate = Decimal(rng.randint(0, 2800)) / 10000
        t = compute_totals(lines, rate)
        assert sum(line_total(q, p) for q, p in lines) == t.subtotal
        assert t.tax == money(t.subtotal * rate)
        assert t.total == money(t.subtotal + t.tax - t.discount)


def test_discount_is_subtracted():
    t = compute_totals([(1, "100.00")], "0.18", "18.00")
    assert t.total == Decimal("100.00")


def test_discount_may_equal_whole_amount():
    t = compute_totals([(1, "100.00")], "0.18", "118.00")
    assert t.total == Decimal("0.00")


@pytest.mark.parametrize("lines,rate,discount", [
    ([(-1, "10.00")], "0.18", 0),
    ([(1, "-10.00")], "0.18", 0),
    ([(1, "10.00")], "0.18", "-1"),
    ([(1, "10.00")], "0.18", "11.81"),
    ([(1, "10.00")], "-0.01", 0),
    ([(1, "10.00")], "1.5", 0),
])
def test_rejects_bad_input(lines, rate, discount):
    with pytest.raises(ValidationError):
        compute_totals(lines, rate, discount)


def test_minor_units():
    assert to_minor_units(Decimal("354.00")) == 35400
    assert to_minor_units("0.05") == 5
