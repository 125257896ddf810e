"""
Distribution planning.

Turns a balance snapshot, a payee count and a requested amount into an
even per-payee share. All amounts are integers in RAO.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from bittensor.utils.balance import Balance

from .errors import PlanningError

RAO_PER_TAO = 1_000_000_000
TAO_DECIMALS = 9

MAXIMUM_TOKENS = ("max", "maximum")


@dataclass(frozen=True)
class Maximum:
    """Distribute everything except the fee reserve."""

    def __repr__(self) -> str:
        return "MAXIMUM"


MAXIMUM = Maximum()


@dataclass(frozen=True)
class Fixed:
    """Distribute a fixed amount of whole-unit TAO."""

    tao: Decimal

    @property
    def rao(self) -> int:
        return int(self.tao * RAO_PER_TAO)


Amount = Union[Maximum, Fixed]


def parse_amount(raw: str) -> Amount:
    """Validate a user-supplied amount: ``max`` or a positive TAO decimal."""
    text = raw.strip()
    if text.lower() in MAXIMUM_TOKENS:
        return MAXIMUM

    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Invalid amount '{raw}' (expected 'max' or a TAO amount)")

    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be positive, got {raw}")
    if value.as_tuple().exponent < -TAO_DECIMALS:
        raise ValueError(f"Amount {raw} has more than {TAO_DECIMALS} decimal places")
    return Fixed(value)


def format_tao(rao: int) -> str:
    return f"{Balance.from_rao(rao).tao:.9f} TAO"


@dataclass(frozen=True)
class DistributionPlan:
    """Amounts for one distribution run."""

    total_amount: int
    per_payee_amount: int
    payee_count: int
    fee_reserve: int

    @property
    def is_valid(self) -> bool:
        return self.per_payee_amount > 0

    @property
    def required_balance(self) -> int:
        """Balance the funding account needs before any transfer is built."""
        return self.total_amount + self.fee_reserve

    @property
    def distributed_amount(self) -> int:
        return self.per_payee_amount * self.payee_count

    def validate(self) -> None:
        if not self.is_valid:
            raise PlanningError(
                f"Distribution insufficient to cover transaction fees: "
                f"{self.total_amount} RAO across {self.payee_count} payees "
                f"leaves {self.per_payee_amount} RAO each"
            )

    def summary(self) -> str:
        lines = [
            "=== Multifund — Distribution Plan ===",
            f"Payees: {self.payee_count}",
            f"Total distribution: {format_tao(self.total_amount)}",
            f"Per payee: {format_tao(self.per_payee_amount)}",
            f"Fee reserve (est.): {format_tao(self.fee_reserve)}",
            f"Required balance: {format_tao(self.required_balance)}",
        ]
        return "\n".join(lines)


def compute_plan(
    amount: Amount,
    balance: int,
    payee_count: int,
    fee_per_transfer: int,
) -> DistributionPlan:
    """
    Compute the even split for ``payee_count`` payees.

    Pure: the same inputs always yield the same plan. The returned plan may
    be invalid (non-positive share); callers must ``validate()`` it before
    touching the network.
    """
    if payee_count <= 0:
        raise PlanningError("No payees to distribute to")

    fee_reserve = payee_count * fee_per_transfer
    if isinstance(amount, Maximum):
        total_amount = balance - fee_reserve
    else:
        total_amount = amount.rao

    return DistributionPlan(
        total_amount=total_amount,
        per_payee_amount=total_amount // payee_count,
        payee_count=payee_count,
        fee_reserve=fee_reserve,
    )
