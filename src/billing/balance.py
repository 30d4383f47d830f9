"""Balance arithmetic shared by the ledger and the lifecycle.

All money is Decimal quantized to cents. The remaining balance is always
derived from the ledger at decision time; nothing here holds state.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

from src.billing.errors import InvalidAmountError

if TYPE_CHECKING:
    from src.models.payment import PaymentEntry

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize a trusted numeric value to cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: object, allow_zero: bool = False) -> Decimal:
    """Normalize caller input into a cent-quantized amount.

    Accepts Decimal, int, float and numeric strings. Floats go through
    ``str`` so 0.1 becomes Decimal("0.10") rather than its binary expansion.

    Args:
        value: Raw amount supplied by a caller.
        allow_zero: Accept 0.00 (fees may be zero; payments may not).

    Returns:
        Amount rounded half-up to two decimal places.

    Raises:
        InvalidAmountError: If the value is not a finite number, is negative,
            or is zero when zero is not allowed.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError("Amount must be a number", received=value)

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidAmountError("Amount must be a valid number", received=value) from exc
    else:
        raise InvalidAmountError("Amount must be a number", received=value)

    if not amount.is_finite():
        raise InvalidAmountError("Amount must be a finite number", received=value)

    try:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidAmountError("Amount is out of range", received=value) from exc
    if amount < ZERO or (amount == ZERO and not allow_zero):
        raise InvalidAmountError("Amount must be greater than zero", received=value)
    return amount


def remaining(fees: Decimal, total_paid: Decimal) -> Decimal:
    """Amount still owed: ``max(0, fees - total_paid)``."""
    return max(ZERO, to_money(fees) - to_money(total_paid))


def is_fully_paid(fees: Decimal, total_paid: Decimal) -> bool:
    """True exactly when nothing remains to be paid."""
    return remaining(fees, total_paid) == ZERO


@dataclass(frozen=True)
class PaymentSummary:
    """Balance of a work item as derived from its ledger."""

    work_id: int
    total_fees: Decimal
    total_paid: Decimal
    remaining_amount: Decimal
    can_finalize: bool
    payments: list["PaymentEntry"] = field(default_factory=list)
