"""Tests for balance arithmetic and amount parsing."""

from decimal import Decimal

import pytest

from src.billing.balance import ZERO, is_fully_paid, parse_amount, remaining, to_money
from src.billing.errors import InvalidAmountError


class TestRemaining:
    """Tests for remaining()."""

    def test_partial_payment(self) -> None:
        assert remaining(Decimal("1000.00"), Decimal("400.00")) == Decimal("600.00")

    def test_exact_payment_is_zero(self) -> None:
        assert remaining(Decimal("500.00"), Decimal("500.00")) == ZERO

    def test_never_negative(self) -> None:
        """Legacy rows paid above their fees still report zero."""
        assert remaining(Decimal("500.00"), Decimal("650.00")) == ZERO

    def test_zero_fees(self) -> None:
        assert remaining(ZERO, ZERO) == ZERO
        assert is_fully_paid(ZERO, ZERO)

    def test_is_fully_paid_only_when_nothing_remains(self) -> None:
        assert not is_fully_paid(Decimal("500.00"), Decimal("499.99"))
        assert is_fully_paid(Decimal("500.00"), Decimal("500.00"))


class TestParseAmount:
    """Tests for parse_amount()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("400", Decimal("400.00")),
            ("  250.5 ", Decimal("250.50")),
            (100, Decimal("100.00")),
            (0.1, Decimal("0.10")),
            (Decimal("19.999"), Decimal("20.00")),
            ("0.005", Decimal("0.01")),
        ],
    )
    def test_accepts_numbers(self, raw: object, expected: Decimal) -> None:
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [None, True, "", "abc", "NaN", "Infinity", "-5", -0.01, 0, "0.004", [], {"a": 1}],
    )
    def test_rejects_invalid(self, raw: object) -> None:
        with pytest.raises(InvalidAmountError):
            parse_amount(raw)

    def test_zero_allowed_for_fees(self) -> None:
        assert parse_amount("0", allow_zero=True) == ZERO

    def test_negative_rejected_even_when_zero_allowed(self) -> None:
        with pytest.raises(InvalidAmountError) as exc_info:
            parse_amount("-1", allow_zero=True)
        assert exc_info.value.code == "invalid_amount"

    def test_error_payload_carries_received_value(self) -> None:
        with pytest.raises(InvalidAmountError) as exc_info:
            parse_amount("ten")
        payload = exc_info.value.to_dict()
        assert payload["code"] == "invalid_amount"
        assert payload["received"] == "ten"


def test_to_money_rounds_half_up() -> None:
    assert to_money(Decimal("2.345")) == Decimal("2.35")
    assert to_money(7) == Decimal("7.00")
