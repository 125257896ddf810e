"""
Payee sources.

Test networks get freshly generated addresses with no real owner behind
them; mainnet reads a newline-delimited address list:

    5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY
    5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty

Whitespace around each line is ignored, as are blank lines. Duplicate
addresses are kept; each occurrence receives its own share.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from bittensor.utils import is_valid_bittensor_address_or_public_key
from bittensor_wallet import Keypair

from .errors import ConfigurationError, MalformedAddressError

logger = logging.getLogger(__name__)


def generate_test_payees(count: int) -> list[str]:
    """Return ``count`` ss58 addresses of newly generated throwaway keypairs."""
    payees = []
    for _ in range(count):
        keypair = Keypair.create_from_mnemonic(Keypair.generate_mnemonic())
        payees.append(keypair.ss58_address)
    return payees


def load_payees_from_list(filepath: str | Path) -> list[str]:
    """Parse a newline-delimited address list.

    Raises MalformedAddressError on the first line that is not a valid
    address (or not UTF-8); nothing after it is read. An unreadable file
    raises ConfigurationError.
    """
    filepath = Path(filepath)
    payees = []

    try:
        with open(filepath, "rb") as f:
            for line_number, raw in enumerate(f, start=1):
                try:
                    address = raw.decode("utf-8-sig").strip()
                except UnicodeDecodeError as exc:
                    raise MalformedAddressError(line_number, "<invalid UTF-8>") from exc
                # an empty string is never an address
                if not address:
                    continue
                if not is_valid_bittensor_address_or_public_key(address):
                    raise MalformedAddressError(line_number, address)
                payees.append(address)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read payee list {filepath}: {exc.strerror or exc}") from exc

    logger.debug("Loaded %d payees from %s", len(payees), filepath)
    return payees


@dataclass(frozen=True)
class GeneratedPayees:
    """Payee source for test networks."""

    count: int

    def load(self) -> list[str]:
        return generate_test_payees(self.count)

    def describe(self) -> str:
        return f"{self.count} generated test accounts"


@dataclass(frozen=True)
class PayeeListFile:
    """Payee source backed by an address list on disk."""

    path: Path

    def load(self) -> list[str]:
        return load_payees_from_list(self.path)

    def describe(self) -> str:
        return str(self.path)
