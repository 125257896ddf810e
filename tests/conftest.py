from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from multifund.batch import BatchResult
from multifund.config import FundingConfig
from multifund.networks import Network, NetworkKind

# Well-known Substrate development accounts.
ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
CHARLIE = "5FLSigC9HGRKVhB9FiEo4Y3koPsNmBmLJbpXg2mp1hXcS59Y"
DAVE = "5DAAnrj7VHTznn2AWBemMuyBwZWs6FNFjdyVXUeYum3PTXFy"
EVE = "5HGjWAeFDfFCWPsjFQdVV2Msvz2XtMktvgocEZcCj68kUMaw"

FUNDER = "5FunderAccountUsedOnlyByTheStubLedger"


class StaticPayees:
    def __init__(self, payees: list[str]) -> None:
        self.payees = list(payees)

    def load(self) -> list[str]:
        return list(self.payees)

    def describe(self) -> str:
        return "static test payees"


class StubLedger:
    """In-memory stand-in for SubtensorLedger."""

    def __init__(
        self,
        balance: int,
        *,
        fail_batch: int | None = None,
        raise_on_batch: int | None = None,
        payee_balance_error: bool = False,
        top_up_error: Exception | None = None,
    ) -> None:
        self.address = FUNDER
        self.balances = {FUNDER: balance}
        self.fail_batch = fail_batch
        self.raise_on_batch = raise_on_batch
        self.payee_balance_error = payee_balance_error
        self.top_up_error = top_up_error
        self.top_ups: list[tuple[str, int]] = []
        self.submitted: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.fee_estimates = 0
        self.reads_in_flight = 0
        self.max_reads_in_flight = 0

    async def get_balance(self, address: str) -> int:
        self.reads_in_flight += 1
        self.max_reads_in_flight = max(self.max_reads_in_flight, self.reads_in_flight)
        await asyncio.sleep(0)
        self.reads_in_flight -= 1
        if address != self.address and self.payee_balance_error:
            raise RuntimeError("rpc unavailable")
        return self.balances.get(address, 0)

    async def request_top_up(self, address: str, amount: int) -> str:
        if self.top_up_error is not None:
            raise self.top_up_error
        self.top_ups.append((address, amount))
        self.balances[address] = self.balances.get(address, 0) + amount
        return "0xtopup"

    async def estimate_batch_fee(self, batch) -> int:
        self.fee_estimates += 1
        return 1_000

    async def submit_batch(self, batch) -> BatchResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        self.submitted.append(batch.index)

        if batch.index == self.raise_on_batch:
            raise RuntimeError("SubstrateRequestException: Invalid Transaction")

        if batch.index == self.fail_batch:
            return BatchResult(
                success=False,
                message="Module error: Balances.InsufficientBalance",
                batch_number=batch.index + 1,
                total_amount=batch.total_amount,
                recipient_count=len(batch),
            )

        for instruction in batch.instructions:
            self.balances[instruction.source] -= instruction.amount
            self.balances[instruction.dest] = self.balances.get(instruction.dest, 0) + instruction.amount
        return BatchResult(
            success=True,
            message="included",
            batch_number=batch.index + 1,
            block_hash=f"0xblock{batch.index}",
            total_amount=batch.total_amount,
            total_fee=500,
            recipient_count=len(batch),
        )


def make_network(kind: NetworkKind, payees: list[str]) -> Network:
    top_up_uri = None if kind is NetworkKind.PRODUCTION else "//Alice"
    return Network(
        kind=kind,
        endpoint="ws://127.0.0.1:9944",
        payee_source=StaticPayees(payees),
        top_up_uri=top_up_uri,
    )


@pytest.fixture
def funding_config() -> FundingConfig:
    return FundingConfig(
        secret_seed=bytes(range(32)),
        endpoints={kind: "ws://127.0.0.1:9944" for kind in NetworkKind},
        payee_list_path=Path("payees.txt"),
        fee_per_transfer=2_000,
        max_instructions_per_tx=20,
    )


@pytest.fixture
def secret_key_json() -> str:
    return "[" + ",".join(str(b) for b in range(1, 33)) + "]"
