"""
Batch construction for Multifund.

Every payee gets one balance transfer. Transfers are packed in payee
order into batches of at most MAX_INSTRUCTIONS_PER_TX; each batch becomes
one Utility.batch_all extrinsic. The bound is structural: a batch that
would exceed the per-extrinsic weight budget is never built, rather than
being rejected by the chain after submission.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from .config import DEFAULT_MAX_INSTRUCTIONS_PER_TX
from .errors import PlanningError
from .plan import DistributionPlan, format_tao

MAX_INSTRUCTIONS_PER_TX = DEFAULT_MAX_INSTRUCTIONS_PER_TX

# Atomic: every transfer in a batch succeeds or the whole batch reverts.
BATCH_CALL_FUNCTION = "batch_all"


@dataclass(frozen=True)
class TransferInstruction:
    """A single transfer from the funding account to one payee."""

    source: str
    dest: str
    amount: int  # in RAO


@dataclass(frozen=True)
class TransactionBatch:
    """An ordered group of transfers submitted as one extrinsic."""

    index: int  # 0-based creation order
    instructions: tuple[TransferInstruction, ...]

    def __len__(self) -> int:
        return len(self.instructions)

    @property
    def total_amount(self) -> int:
        return sum(i.amount for i in self.instructions)


def build_batches(
    source: str,
    payees: Sequence[str],
    plan: DistributionPlan,
    max_instructions: int = MAX_INSTRUCTIONS_PER_TX,
) -> list[TransactionBatch]:
    """
    Pack one transfer per payee into instruction-bounded batches.

    A new batch is opened whenever the running payee index is a multiple
    of ``max_instructions``, so the result holds ceil(n / max_instructions)
    batches and only the last one can be short.
    """
    if max_instructions <= 0:
        raise ValueError(f"max_instructions must be positive, got {max_instructions}")
    plan.validate()
    if len(payees) != plan.payee_count:
        raise PlanningError(
            f"Plan covers {plan.payee_count} payees but {len(payees)} were supplied"
        )

    groups: list[list[TransferInstruction]] = []
    for i, payee in enumerate(payees):
        if i % max_instructions == 0:
            groups.append([])
        groups[-1].append(TransferInstruction(
            source=source,
            dest=payee,
            amount=plan.per_payee_amount,
        ))

    return [
        TransactionBatch(index=idx, instructions=tuple(group))
        for idx, group in enumerate(groups)
    ]


@dataclass
class BatchResult:
    """Result of submitting one batch."""

    success: bool
    message: str
    batch_number: int = 0  # 1-based
    block_hash: Optional[str] = None
    extrinsic_hash: Optional[str] = None
    total_amount: int = 0  # RAO sent to payees
    total_fee: int = 0  # network fee in RAO
    recipient_count: int = 0
    duration_seconds: float = 0.0
    failed_recipients: list[str] = field(default_factory=list)

    def summary(self) -> str:
        """Human-readable summary of the batch result."""
        status = "SUCCESS" if self.success else "FAILED"
        lines = [
            f"=== Batch {self.batch_number} — {status} ===",
            f"Recipients: {self.recipient_count}",
            f"Total amount: {format_tao(self.total_amount)}",
            f"Network fee: {format_tao(self.total_fee)}",
            f"Duration: {self.duration_seconds:.1f}s",
        ]
        if self.block_hash:
            lines.append(f"Block hash: {self.block_hash}")
        if self.extrinsic_hash:
            lines.append(f"Extrinsic hash: {self.extrinsic_hash}")
        if not self.success:
            lines.append(f"Error: {self.message}")
        if self.failed_recipients:
            lines.append(f"Failed recipients: {', '.join(self.failed_recipients)}")
        return "\n".join(lines)
