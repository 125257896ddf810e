"""Funding checks run once between planning and batching."""

from __future__ import annotations

import logging

from .errors import FundingShortfallError
from .networks import Network
from .plan import DistributionPlan, format_tao

logger = logging.getLogger(__name__)


async def ensure_funded(
    ledger,
    network: Network,
    address: str,
    balance: int,
    plan: DistributionPlan,
    *,
    dry_run: bool = False,
) -> int:
    """
    Make sure ``address`` can pay for ``plan`` plus its fee reserve.

    Off mainnet a shortfall is covered by one top-up of exactly the
    missing amount, awaited until included. On mainnet it raises
    FundingShortfallError. Returns the number of RAO requested (0 when
    the balance already covers the plan).
    """
    required = plan.required_balance
    if balance >= required:
        return 0

    shortfall = required - balance
    if network.is_production:
        raise FundingShortfallError(requested=plan.total_amount, available=balance)

    if dry_run:
        logger.warning("insufficient balance; a live run would request %s", format_tao(shortfall))
        return shortfall

    logger.info("insufficient balance; requesting %s top-up...", format_tao(shortfall))
    extrinsic_hash = await ledger.request_top_up(address, shortfall)
    logger.info("top-up confirmed (%s)", extrinsic_hash)
    return shortfall
