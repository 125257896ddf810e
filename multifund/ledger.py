"""
Bittensor network access for Multifund.

Wraps an ``AsyncSubtensor`` connection: balance reads, test-network top-ups
and signed submission of transfer batches. Every method waits for the
chain to include its extrinsic before returning, so callers that await
them one at a time never have two extrinsics from the funding account in
flight.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import bittensor as bt
from bittensor.core.extrinsics.pallets import Balances
from bittensor_wallet import Keypair

from .batch import BATCH_CALL_FUNCTION, BatchResult, TransactionBatch
from .errors import TopUpError
from .networks import Network

logger = logging.getLogger(__name__)


class SubtensorLedger:
    """Funding-account operations against one subtensor endpoint."""

    def __init__(
        self,
        subtensor: bt.AsyncSubtensor,
        signer: Keypair,
        *,
        top_up_uri: Optional[str] = None,
        keep_alive: bool = True,
        wait_for_finalization: bool = False,
    ) -> None:
        self.subtensor = subtensor
        self.signer = signer
        self.top_up_uri = top_up_uri
        self.keep_alive = keep_alive
        self.wait_for_finalization = wait_for_finalization

    @classmethod
    @asynccontextmanager
    async def connect(
        cls, network: Network, signer: Keypair, **kwargs
    ) -> AsyncIterator["SubtensorLedger"]:
        async with bt.AsyncSubtensor(network=network.endpoint) as subtensor:
            yield cls(subtensor, signer, top_up_uri=network.top_up_uri, **kwargs)

    @property
    def address(self) -> str:
        return self.signer.ss58_address

    async def get_balance(self, address: str) -> int:
        balance = await self.subtensor.get_balance(address)
        return balance.rao

    async def _transfer_call(self, dest: str, amount: int):
        balances = Balances(self.subtensor)
        transfer_fn = "transfer_keep_alive" if self.keep_alive else "transfer_allow_death"
        return await getattr(balances, transfer_fn)(dest=dest, value=amount)

    async def _batch_call(self, batch: TransactionBatch):
        calls = []
        for instruction in batch.instructions:
            calls.append(await self._transfer_call(instruction.dest, instruction.amount))
        return await self.subtensor.compose_call(
            call_module="Utility",
            call_function=BATCH_CALL_FUNCTION,
            call_params={"calls": calls},
        )

    async def _sign_and_submit(self, call, keypair: Keypair):
        extrinsic = await self.subtensor.substrate.create_signed_extrinsic(
            call=call,
            keypair=keypair,
        )
        return await self.subtensor.substrate.submit_extrinsic(
            extrinsic,
            wait_for_inclusion=True,
            wait_for_finalization=self.wait_for_finalization,
        )

    async def request_top_up(self, address: str, amount: int) -> str:
        """
        Fund ``address`` with ``amount`` RAO from the network's top-up account.

        Single attempt; returns the extrinsic hash once included.
        """
        if not self.top_up_uri:
            raise TopUpError("No top-up account configured for this network")

        faucet = Keypair.create_from_uri(self.top_up_uri)
        try:
            call = await self._transfer_call(address, amount)
            response = await self._sign_and_submit(call, faucet)
        except Exception as exc:
            raise TopUpError(f"Top-up of {amount} RAO failed: {exc}") from exc

        if not await response.is_success:
            raise TopUpError(
                f"Top-up of {amount} RAO rejected: {await response.error_message}"
            )
        logger.debug("Top-up included in block %s", response.block_hash)
        return response.extrinsic_hash

    async def estimate_batch_fee(self, batch: TransactionBatch) -> int:
        call = await self._batch_call(batch)
        fee_info = await self.subtensor.substrate.get_payment_info(
            call=call,
            keypair=self.signer,
        )
        return int(fee_info["partial_fee"]) if fee_info else 0

    async def submit_batch(self, batch: TransactionBatch) -> BatchResult:
        """Sign and submit one batch, returning once the chain included it."""
        start_time = time.time()
        batch_call = await self._batch_call(batch)
        response = await self._sign_and_submit(batch_call, self.signer)
        duration = time.time() - start_time

        if await response.is_success:
            return BatchResult(
                success=True,
                message="included",
                batch_number=batch.index + 1,
                block_hash=response.block_hash,
                extrinsic_hash=response.extrinsic_hash,
                total_amount=batch.total_amount,
                total_fee=int(await response.total_fee_amount or 0),
                recipient_count=len(batch),
                duration_seconds=duration,
            )

        return BatchResult(
            success=False,
            message=str(await response.error_message),
            batch_number=batch.index + 1,
            extrinsic_hash=response.extrinsic_hash,
            total_amount=batch.total_amount,
            recipient_count=len(batch),
            duration_seconds=duration,
            failed_recipients=[i.dest for i in batch.instructions],
        )
