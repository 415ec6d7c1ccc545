from decimal import Decimal

import pytest

from shelfledger.models.enums import PaymentMethod
from shelfledger.services.errors import InvalidInput
from shelfledger.services.sale_service import (
    SaleLine,
    compute_sale_totals,
    money,
    parse_payment_method,
)


def test_totals_sum_lines_plus_tax_minus_discount():
    lines = [
        SaleLine(variant_id=5, quantity=Decimal("2"), unit_price=Decimal("15.50")),
        SaleLine(variant_id=6, quantity=Decimal("1.5"), unit_price=Decimal("40.00")),
    ]
    line_totals, total = compute_sale_totals(
        lines, tax_amount=Decimal("4.60"), discount_amount=Decimal("5")
    )
    assert line_totals == [Decimal("31.00"), Decimal("60.00")]
    assert total == Decimal("90.60")


def test_line_total_rounds_half_up_to_cents():
    lines = [SaleLine(variant_id=5, quantity=Decimal("0.125"), unit_price=Decimal("0.20"))]
    line_totals, total = compute_sale_totals(
        lines, tax_amount=Decimal("0"), discount_amount=Decimal("0")
    )
    # 0.125 × 0.20 = 0.025 → 0.03
    assert line_totals == [Decimal("0.03")]
    assert total == Decimal("0.03")


def test_money_quantizes():
    assert money(Decimal("1")) == Decimal("1.00")
    assert str(money(Decimal("2.345"))) == "2.35"


def test_payment_method_parse():
    assert parse_payment_method("UPI") is PaymentMethod.UPI
    with pytest.raises(InvalidInput):
        parse_payment_method("bitcoin")
