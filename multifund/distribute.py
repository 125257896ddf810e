"""
The distribution engine.

``run_distribution`` drives one run end to end:

    payees -> balance snapshot -> plan -> funding check -> batches -> submit

``ledger`` is any object with an ``address`` attribute and awaitable
``get_balance``, ``request_top_up`` and ``submit_batch`` methods; in
production that is a :class:`multifund.ledger.SubtensorLedger`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .batch import BatchResult, TransactionBatch, build_batches
from .config import FundingConfig
from .errors import BatchSubmissionError, PlanningError
from .guard import ensure_funded
from .networks import Network
from .plan import Amount, DistributionPlan, compute_plan, format_tao

logger = logging.getLogger(__name__)

# Balance reads in flight at once during the payee preview.
PREVIEW_CONCURRENCY = 8

ConfirmCallback = Callable[[DistributionPlan, Sequence[TransactionBatch]], bool]


@dataclass
class DistributionReport:
    """Outcome of one run."""

    network: str
    funding_address: str
    balance: int
    plan: DistributionPlan
    batches: list[TransactionBatch]
    results: list[BatchResult] = field(default_factory=list)
    top_up: int = 0
    dry_run: bool = False
    aborted: bool = False

    @property
    def completed(self) -> bool:
        return (
            not self.dry_run
            and not self.aborted
            and len(self.results) == len(self.batches)
            and all(r.success for r in self.results)
        )


async def submit_batches(ledger, batches: Sequence[TransactionBatch]) -> list[BatchResult]:
    """
    Submit ``batches`` strictly in order.

    Each batch is awaited until included before the next one is signed,
    since they all share the funding account's nonce. The first failure,
    whether a rejected receipt or an exception from the node, raises
    BatchSubmissionError; nothing is retried or rolled back.
    """
    results: list[BatchResult] = []
    total = len(batches)

    for batch in batches:
        number = batch.index + 1
        logger.info("sending transaction %d/%d", number, total)
        try:
            result = await ledger.submit_batch(batch)
        except Exception as exc:
            raise BatchSubmissionError(number, total, str(exc), results) from exc
        results.append(result)
        if not result.success:
            raise BatchSubmissionError(number, total, result.message, results)
        logger.info("transaction %d/%d included in block %s", number, total, result.block_hash)

    return results


async def preview_payees(
    ledger,
    payees: Sequence[str],
    plan: DistributionPlan,
    *,
    concurrency: int = PREVIEW_CONCURRENCY,
) -> None:
    """Log each payee's current and projected balance. Best effort only."""
    semaphore = asyncio.Semaphore(concurrency)

    async def fetch(payee: str) -> int:
        async with semaphore:
            return await ledger.get_balance(payee)

    balances = await asyncio.gather(
        *(fetch(payee) for payee in payees),
        return_exceptions=True,
    )
    for count, (payee, balance) in enumerate(zip(payees, balances), start=1):
        if isinstance(balance, Exception):
            logger.warning("[%d] %s (balance unavailable: %s)", count, payee, balance)
            continue
        logger.info(
            "[%d] %s (%s --> %s)",
            count,
            payee,
            format_tao(balance),
            format_tao(balance + plan.per_payee_amount),
        )


async def run_distribution(
    ledger,
    network: Network,
    config: FundingConfig,
    amount: Amount,
    *,
    dry_run: bool = False,
    show_balances: bool = True,
    confirm: Optional[ConfirmCallback] = None,
) -> DistributionReport:
    """Plan, fund, batch and submit one distribution."""
    payees = network.payee_source.load()
    if not payees:
        raise PlanningError(f"No payees found in {network.payee_source.describe()}")
    logger.info("loaded %d payees from %s", len(payees), network.payee_source.describe())

    funding_address = ledger.address
    balance = await ledger.get_balance(funding_address)
    logger.info("payer balance:\t%s", format_tao(balance))

    plan = compute_plan(amount, balance, len(payees), config.fee_per_transfer)
    plan.validate()

    top_up = await ensure_funded(
        ledger, network, funding_address, balance, plan, dry_run=dry_run
    )

    logger.info(
        "distributing %s (%s each) to:",
        format_tao(plan.total_amount),
        format_tao(plan.per_payee_amount),
    )
    if show_balances:
        await preview_payees(ledger, payees, plan)

    batches = build_batches(funding_address, payees, plan, config.max_instructions_per_tx)
    report = DistributionReport(
        network=network.name,
        funding_address=funding_address,
        balance=balance,
        plan=plan,
        batches=batches,
        top_up=top_up,
        dry_run=dry_run,
    )

    if dry_run:
        logger.info("dry run: %d batches built, nothing submitted", len(batches))
        return report

    # the prompt blocks, so keep it off the loop serving the websocket
    if confirm is not None and not await asyncio.to_thread(confirm, plan, batches):
        report.aborted = True
        return report

    report.results = await submit_batches(ledger, batches)
    return report
