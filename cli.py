#!/usr/bin/env python3
"""
Multifund — CLI for even-split TAO distributions.

Usage:
    multifund [mainnet|devnet|localnet] [max|<amount>] [options]

Examples:
    # Spread the whole funding balance (minus fees) over 10 fresh localnet accounts
    multifund localnet max

    # Send 25 TAO in total to the addresses listed in MULTIFUND_PAYEE_LIST
    multifund mainnet 25

    # Plan and batch without submitting anything
    multifund devnet 1.5 --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import find_dotenv, load_dotenv

from multifund import __version__
from multifund.config import load_config
from multifund.distribute import DistributionReport, run_distribution
from multifund.errors import (
    BatchSubmissionError,
    FundingShortfallError,
    MultifundError,
    PlanningError,
)
from multifund.ledger import SubtensorLedger
from multifund.networks import DEFAULT_NETWORK, NetworkKind, resolve_network
from multifund.plan import format_tao, parse_amount

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PLANNING = 3
EXIT_SHORTFALL = 4

BANNER = r"""
  __  __      _ _   _  __              _
 |  \/  |_  _| | |_(_)/ _|_  _ _ _  __| |
 | |\/| | || | |  _| |  _| || | ' \/ _` |
 |_|  |_|\_,_|_|\__|_|_|  \_,_|_||_\__,_|
  Even-split TAO distributions
"""


def _network_arg(raw: str) -> NetworkKind:
    try:
        return NetworkKind.parse(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def _amount_arg(raw: str):
    try:
        return parse_amount(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def _confirm_prompt(plan, batches) -> bool:
    response = input(
        f"\nDistribute {format_tao(plan.total_amount)} to {plan.payee_count} payees "
        f"in {len(batches)} transactions? [y/N]: "
    )
    return response.lower() in ("y", "yes")


def print_report(report: DistributionReport) -> None:
    print()
    print(report.plan.summary())
    print(f"Batch transactions: {len(report.batches)}")
    if report.top_up:
        print(f"Top-up: {format_tao(report.top_up)}")

    if report.dry_run:
        print("\n[DRY RUN] No transactions were submitted.")
        return
    if report.aborted:
        print("Aborted.")
        return

    print()
    for result in report.results:
        print(result.summary())
        print()

    total_sent = sum(r.total_amount for r in report.results)
    total_fees = sum(r.total_fee for r in report.results)
    print("All batches completed successfully!")
    print(f"Total transferred: {format_tao(total_sent)}")
    print(f"Total network fees: {format_tao(total_fees)}")


async def _distribute(args: argparse.Namespace, network, config, signer) -> DistributionReport:
    confirm = None
    if network.is_production and not args.yes:
        confirm = _confirm_prompt

    async with SubtensorLedger.connect(
        network,
        signer,
        keep_alive=not args.allow_death,
        wait_for_finalization=args.finalize,
    ) as ledger:
        report = await run_distribution(
            ledger,
            network,
            config,
            args.amount,
            dry_run=args.dry_run,
            show_balances=not args.no_balances,
            confirm=confirm,
        )
        if args.dry_run and report.batches:
            fee = await ledger.estimate_batch_fee(report.batches[0])
            print(f"Network fee (est.): {format_tao(fee)} per batch, "
                  f"{format_tao(fee * len(report.batches))} total")
    return report


def cmd_distribute(args: argparse.Namespace) -> int:
    """Run one distribution and map failures to exit codes."""
    print(BANNER)

    try:
        config = load_config()
        network = resolve_network(args.network, config)
        signer = config.signing_keypair()
    except MultifundError as e:
        print(f"Configuration error: {e}")
        return EXIT_FAILURE

    print(f"payer address:\t{signer.ss58_address}")
    print(f"active RPC:\t{network.endpoint} ({network.name})")

    try:
        report = asyncio.run(_distribute(args, network, config, signer))
    except PlanningError as e:
        print(f"{e}; exiting...")
        return EXIT_PLANNING
    except FundingShortfallError as e:
        print("insufficient balance for distribution...")
        print(f"requested:\t{format_tao(e.requested)}\navailable:\t{format_tao(e.available)}")
        return EXIT_SHORTFALL
    except BatchSubmissionError as e:
        print(f"Error: {e}")
        print(f"WARNING: {e.batch_number - 1}/{e.total} batches were submitted before the failure")
        return EXIT_FAILURE
    except MultifundError as e:
        print(f"Error: {e}")
        return EXIT_FAILURE

    print_report(report)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multifund",
        description="Multifund — split a funding account's TAO evenly across many payees",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"multifund {__version__}"
    )
    parser.add_argument(
        "network", nargs="?", type=_network_arg, default=DEFAULT_NETWORK,
        help="Target network (mainnet, devnet, localnet). Default: localnet"
    )
    parser.add_argument(
        "amount", nargs="?", type=_amount_arg, default=parse_amount("max"),
        help="Total TAO to distribute, or 'max' for the whole balance minus fees. Default: max"
    )
    parser.add_argument(
        "--env-file", default=None,
        help="Path to a .env file with MULTIFUND_* settings"
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Plan and batch the distribution without submitting transactions"
    )
    parser.add_argument(
        "--yes", "-y", action="store_true",
        help="Skip the mainnet confirmation prompt"
    )
    parser.add_argument(
        "--allow-death", action="store_true",
        help="Allow transfers that may reduce the funding account below existential deposit"
    )
    parser.add_argument(
        "--finalize", action="store_true",
        help="Wait for each batch to be finalized, not just included"
    )
    parser.add_argument(
        "--no-balances", action="store_true",
        help="Skip reading payee balances before distributing"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )
    load_dotenv(args.env_file or find_dotenv(usecwd=True))

    return cmd_distribute(args)


if __name__ == "__main__":
    sys.exit(main())
