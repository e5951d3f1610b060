"""FXBands error taxonomy.

Upstream failures propagate unchanged; numeric edge cases never raise.
"""


class FXBandsError(Exception):
    """Base class for all FXBands errors."""


class DataUnavailable(FXBandsError, LookupError):
    """The currency pair is unknown or its data source is missing."""


class InsufficientData(FXBandsError, ValueError):
    """The price series is shorter than the required look-back."""

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            f"Need at least {required} price points, got {available}"
        )


class RateFeedError(FXBandsError):
    """The external exchange-rate API failed or returned an error."""
