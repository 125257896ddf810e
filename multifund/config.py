"""Configuration loader for Multifund.

Everything the engine needs from the environment is read here, once, at
the entry point. The resulting ``FundingConfig`` is passed by value into
the distribution engine.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from bittensor_wallet import Keypair

from .errors import ConfigurationError
from .networks import NetworkKind

# Fixed per-transfer fee estimate in RAO. Not derived from the chain.
DEFAULT_FEE_PER_TRANSFER = 2000

# Transfers per Utility.batch_all extrinsic.
DEFAULT_MAX_INSTRUCTIONS_PER_TX = 20

# Fresh payees generated on test networks.
NUM_TEST_PAYEES = 10

# Pre-funded development account on a local subtensor node.
DEFAULT_LOCAL_FAUCET_URI = "//Alice"

SEED_LENGTH = 32

ENV_PRIVATE_KEY = ("MULTIFUND_PRIVATE_KEY", "private_key")
ENV_PAYEE_LIST = ("MULTIFUND_PAYEE_LIST", "csv_path")
ENV_ENDPOINTS = {
    NetworkKind.PRODUCTION: ("MULTIFUND_MAINNET_RPC", "mainnetRPC"),
    NetworkKind.TEST_PUBLIC: ("MULTIFUND_DEVNET_RPC", "devnetRPC"),
    NetworkKind.TEST_LOCAL: ("MULTIFUND_LOCALNET_RPC", "localnetRPC"),
}
ENV_FEE_PER_TRANSFER = "MULTIFUND_FEE_PER_TRANSFER"
ENV_MAX_INSTRUCTIONS = "MULTIFUND_MAX_INSTRUCTIONS_PER_TX"
ENV_FAUCET_URI = "MULTIFUND_FAUCET_URI"
ENV_LOCAL_FAUCET_URI = "MULTIFUND_LOCAL_FAUCET_URI"


@dataclass(frozen=True)
class FundingConfig:
    """Resolved settings for one distribution run."""

    secret_seed: bytes = field(repr=False)
    endpoints: Mapping[NetworkKind, str] = field(default_factory=dict)
    payee_list_path: Optional[Path] = None
    fee_per_transfer: int = DEFAULT_FEE_PER_TRANSFER
    max_instructions_per_tx: int = DEFAULT_MAX_INSTRUCTIONS_PER_TX
    test_payee_count: int = NUM_TEST_PAYEES
    faucet_uri: Optional[str] = None
    local_faucet_uri: Optional[str] = DEFAULT_LOCAL_FAUCET_URI

    def endpoint_for(self, kind: NetworkKind) -> str:
        endpoint = self.endpoints.get(kind)
        if not endpoint:
            names = " or ".join(ENV_ENDPOINTS[kind])
            raise ConfigurationError(f"No RPC endpoint configured for {kind.value} (set {names})")
        return endpoint

    def require_payee_list(self) -> Path:
        if self.payee_list_path is None:
            names = " or ".join(ENV_PAYEE_LIST)
            raise ConfigurationError(f"Payee list path is required on mainnet (set {names})")
        return self.payee_list_path

    def signing_keypair(self) -> Keypair:
        """Funding account keypair derived from the configured seed."""
        return Keypair.create_from_seed("0x" + self.secret_seed.hex())


def _lookup(env: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def parse_secret_key(raw: str) -> bytes:
    """Decode a JSON byte array into a 32-byte seed.

    Accepts either the bare seed or a 64-byte keypair export, in which
    case the leading 32 bytes are the seed.
    """
    try:
        decoded: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Private key is not valid JSON: {exc.msg}") from exc

    if not isinstance(decoded, list) or not decoded:
        raise ConfigurationError("Private key must be a JSON array of byte values")
    if any(isinstance(b, bool) or not isinstance(b, int) or not 0 <= b <= 255 for b in decoded):
        raise ConfigurationError("Private key array must only contain integers 0-255")
    if len(decoded) not in (SEED_LENGTH, SEED_LENGTH * 2):
        raise ConfigurationError(
            f"Private key must be {SEED_LENGTH} or {SEED_LENGTH * 2} bytes, got {len(decoded)}"
        )
    return bytes(decoded[:SEED_LENGTH])


def _coerce_positive_int(raw: Optional[str], *, name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid integer in {name}: {raw}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def load_config(env: Mapping[str, str] | None = None) -> FundingConfig:
    """Build a ``FundingConfig`` from environment variables.

    Legacy lower-case variable names are accepted after the
    ``MULTIFUND_*`` names. Call ``dotenv.load_dotenv`` first to pick up a
    ``.env`` file.
    """
    env_map = os.environ if env is None else env

    raw_key = _lookup(env_map, ENV_PRIVATE_KEY)
    if raw_key is None:
        raise ConfigurationError(
            f"Signing credential missing (set {' or '.join(ENV_PRIVATE_KEY)})"
        )

    endpoints = {}
    for kind, names in ENV_ENDPOINTS.items():
        endpoint = _lookup(env_map, names)
        if endpoint:
            endpoints[kind] = endpoint

    payee_list = _lookup(env_map, ENV_PAYEE_LIST)

    return FundingConfig(
        secret_seed=parse_secret_key(raw_key),
        endpoints=endpoints,
        payee_list_path=Path(payee_list).expanduser() if payee_list else None,
        fee_per_transfer=_coerce_positive_int(
            env_map.get(ENV_FEE_PER_TRANSFER),
            name=ENV_FEE_PER_TRANSFER,
            default=DEFAULT_FEE_PER_TRANSFER,
        ),
        max_instructions_per_tx=_coerce_positive_int(
            env_map.get(ENV_MAX_INSTRUCTIONS),
            name=ENV_MAX_INSTRUCTIONS,
            default=DEFAULT_MAX_INSTRUCTIONS_PER_TX,
        ),
        faucet_uri=_lookup(env_map, (ENV_FAUCET_URI,)),
        local_faucet_uri=_lookup(env_map, (ENV_LOCAL_FAUCET_URI,)) or DEFAULT_LOCAL_FAUCET_URI,
    )
