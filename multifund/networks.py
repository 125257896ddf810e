"""Target environments and the capabilities each one carries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from .payees import GeneratedPayees, PayeeListFile

if TYPE_CHECKING:
    from .config import FundingConfig


class NetworkKind(Enum):
    """Supported target environments, keyed by their CLI name."""

    PRODUCTION = "mainnet"
    TEST_PUBLIC = "devnet"
    TEST_LOCAL = "localnet"

    @classmethod
    def parse(cls, name: str) -> "NetworkKind":
        try:
            return cls(name.strip().lower())
        except ValueError:
            choices = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown network '{name}' (expected one of: {choices})")


DEFAULT_NETWORK = NetworkKind.TEST_LOCAL


@dataclass(frozen=True)
class Network:
    """A resolved target environment.

    Carries everything that differs between environments so the engine
    never branches on a network name: the RPC endpoint, where payees come
    from, and which account (if any) can top up the funding account.
    """

    kind: NetworkKind
    endpoint: str
    payee_source: Union[GeneratedPayees, PayeeListFile]
    top_up_uri: Optional[str] = None

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def is_production(self) -> bool:
        return self.kind is NetworkKind.PRODUCTION


def resolve_network(kind: NetworkKind, config: "FundingConfig") -> Network:
    """Select endpoint, payee source and top-up account for ``kind``."""
    endpoint = config.endpoint_for(kind)

    if kind is NetworkKind.PRODUCTION:
        return Network(
            kind=kind,
            endpoint=endpoint,
            payee_source=PayeeListFile(config.require_payee_list()),
        )

    top_up_uri = config.local_faucet_uri if kind is NetworkKind.TEST_LOCAL else config.faucet_uri
    return Network(
        kind=kind,
        endpoint=endpoint,
        payee_source=GeneratedPayees(config.test_payee_count),
        top_up_uri=top_up_uri,
    )
