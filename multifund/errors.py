"""Exception hierarchy shared by the distribution engine and the CLI."""

from __future__ import annotations


class MultifundError(RuntimeError):
    """Base class for every fatal distribution error."""


class ConfigurationError(MultifundError):
    """Raised when configuration is missing or invalid."""


class MalformedAddressError(MultifundError, ValueError):
    """Raised when a payee list contains something that is not an address."""

    def __init__(self, line_number: int, value: str) -> None:
        super().__init__(f"Line {line_number}: invalid ss58 address '{value}'")
        self.line_number = line_number
        self.value = value


class PlanningError(MultifundError):
    """Raised when a distribution plan cannot be executed."""


class FundingShortfallError(MultifundError):
    """Raised when the funding account cannot cover a production distribution."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient balance for distribution: "
            f"requested {requested} RAO, available {available} RAO"
        )
        self.requested = requested
        self.available = available


class TopUpError(MultifundError):
    """Raised when a supplemental funding request fails."""


class BatchSubmissionError(MultifundError):
    """Raised when the network rejects a batch; earlier batches stay submitted."""

    def __init__(self, batch_number: int, total: int, message: str, results=None) -> None:
        super().__init__(f"Batch {batch_number}/{total} failed: {message}")
        self.batch_number = batch_number
        self.total = total
        self.results = list(results or [])
