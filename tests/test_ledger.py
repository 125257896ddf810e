from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from multifund import ledger as ledger_module
from multifund.batch import BATCH_CALL_FUNCTION, TransactionBatch, TransferInstruction
from multifund.errors import TopUpError
from multifund.ledger import SubtensorLedger


async def _value(value):
    return value


class FakeReceipt:
    def __init__(self, success: bool, error: str = "") -> None:
        self._success = success
        self._error = error
        self.block_hash = "0xblock"
        self.extrinsic_hash = "0xextrinsic"

    @property
    def is_success(self):
        return _value(self._success)

    @property
    def error_message(self):
        return _value(self._error)

    @property
    def total_fee_amount(self):
        return _value(1_234)


class FakeSubstrate:
    def __init__(self, success: bool = True) -> None:
        self.success = success
        self.signed = []
        self.submitted = []

    async def create_signed_extrinsic(self, call, keypair):
        self.signed.append((call, keypair))
        return {"call": call, "signer": keypair.ss58_address}

    async def submit_extrinsic(self, extrinsic, wait_for_inclusion, wait_for_finalization):
        self.submitted.append((extrinsic, wait_for_inclusion, wait_for_finalization))
        return FakeReceipt(self.success, "Module error: Balances.InsufficientBalance")

    async def get_payment_info(self, call, keypair):
        return {"partial_fee": 4_321}


class FakeSubtensor:
    def __init__(self, success: bool = True) -> None:
        self.substrate = FakeSubstrate(success)

    async def get_balance(self, address):
        return SimpleNamespace(rao=42)

    async def compose_call(self, call_module, call_function, call_params):
        return {"module": call_module, "function": call_function, **call_params}


class FakeBalances:
    def __init__(self, subtensor) -> None:
        self.subtensor = subtensor

    async def transfer_keep_alive(self, dest, value):
        return ("transfer_keep_alive", dest, value)

    async def transfer_allow_death(self, dest, value):
        return ("transfer_allow_death", dest, value)


class FakeKeypair:
    def __init__(self, ss58_address: str) -> None:
        self.ss58_address = ss58_address

    @classmethod
    def create_from_uri(cls, uri: str) -> "FakeKeypair":
        return cls(f"faucet{uri}")


@pytest.fixture(autouse=True)
def patch_pallets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ledger_module, "Balances", FakeBalances)
    monkeypatch.setattr(ledger_module, "Keypair", FakeKeypair)


def _batch() -> TransactionBatch:
    return TransactionBatch(
        index=1,
        instructions=(
            TransferInstruction("funder", "a", 10),
            TransferInstruction("funder", "b", 10),
        ),
    )


def test_submit_batch_wraps_transfers_in_batch_all() -> None:
    subtensor = FakeSubtensor()
    ledger = SubtensorLedger(subtensor, FakeKeypair("funder"), wait_for_finalization=True)

    result = asyncio.run(ledger.submit_batch(_batch()))

    call, signer = subtensor.substrate.signed[0]
    assert call["module"] == "Utility"
    assert call["function"] == BATCH_CALL_FUNCTION == "batch_all"
    assert call["calls"] == [("transfer_keep_alive", "a", 10), ("transfer_keep_alive", "b", 10)]
    assert signer.ss58_address == "funder"
    assert subtensor.substrate.submitted[0][1:] == (True, True)

    assert result.success
    assert result.batch_number == 2
    assert result.total_amount == 20
    assert result.total_fee == 1_234
    assert result.block_hash == "0xblock"


def test_submit_batch_reports_rejection() -> None:
    ledger = SubtensorLedger(FakeSubtensor(success=False), FakeKeypair("funder"), keep_alive=False)

    result = asyncio.run(ledger.submit_batch(_batch()))

    assert not result.success
    assert "InsufficientBalance" in result.message
    assert result.failed_recipients == ["a", "b"]


def test_allow_death_transfers() -> None:
    subtensor = FakeSubtensor()
    ledger = SubtensorLedger(subtensor, FakeKeypair("funder"), keep_alive=False)

    asyncio.run(ledger.submit_batch(_batch()))

    call, _ = subtensor.substrate.signed[0]
    assert call["calls"][0][0] == "transfer_allow_death"


def test_top_up_signs_with_faucet_account() -> None:
    subtensor = FakeSubtensor()
    ledger = SubtensorLedger(subtensor, FakeKeypair("funder"), top_up_uri="//Alice")

    assert asyncio.run(ledger.request_top_up("funder", 500)) == "0xextrinsic"

    call, signer = subtensor.substrate.signed[0]
    assert call == ("transfer_keep_alive", "funder", 500)
    assert signer.ss58_address == "faucet//Alice"


def test_top_up_without_faucet_fails() -> None:
    ledger = SubtensorLedger(FakeSubtensor(), FakeKeypair("funder"))

    with pytest.raises(TopUpError, match="No top-up account"):
        asyncio.run(ledger.request_top_up("funder", 500))


def test_rejected_top_up_fails() -> None:
    ledger = SubtensorLedger(FakeSubtensor(success=False), FakeKeypair("funder"), top_up_uri="//Alice")

    with pytest.raises(TopUpError, match="rejected"):
        asyncio.run(ledger.request_top_up("funder", 500))


def test_balance_and_fee_estimate() -> None:
    ledger = SubtensorLedger(FakeSubtensor(), FakeKeypair("funder"))

    assert ledger.address == "funder"
    assert asyncio.run(ledger.get_balance("anyone")) == 42
    assert asyncio.run(ledger.estimate_batch_fee(_batch())) == 4_321
