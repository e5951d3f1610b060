"""Drawdown tracking — pure math, no I/O.

Tracks the peak balance seen during a replay and the worst peak-to-current
decline, as a percentage.  The maximum never decreases.
"""


class DrawdownTracker:
    """Tracks balance peaks and the maximum drawdown percentage.

    Args:
        initial_balance: Starting balance; also the first peak.
    """

    def __init__(self, initial_balance: float) -> None:
        if initial_balance <= 0:
            raise ValueError(
                f"initial_balance must be positive, got {initial_balance}"
            )
        self._peak_balance: float = initial_balance
        self._current_balance: float = initial_balance
        self._max_drawdown_pct: float = 0.0
        self._history: list[float] = []

    # ── Mutation ─────────────────────────────────────────────────────────

    def update(self, balance: float) -> float:
        """Record *balance* after a replay step.

        Raises the peak when *balance* exceeds it, then folds the current
        drawdown into the running maximum.

        Returns the running maximum drawdown percentage.
        """
        self._current_balance = balance
        if balance > self._peak_balance:
            self._peak_balance = balance
        self._max_drawdown_pct = max(self._max_drawdown_pct, self.drawdown_pct)
        self._history.append(self._max_drawdown_pct)
        return self._max_drawdown_pct

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def peak_balance(self) -> float:
        """Highest balance recorded."""
        return self._peak_balance

    @property
    def current_balance(self) -> float:
        """Most recently recorded balance."""
        return self._current_balance

    @property
    def drawdown_pct(self) -> float:
        """Current drawdown as a percentage of the peak."""
        return (
            (self._peak_balance - self._current_balance) / self._peak_balance
        ) * 100.0

    @property
    def max_drawdown_pct(self) -> float:
        """Worst drawdown recorded so far."""
        return self._max_drawdown_pct

    @property
    def history(self) -> list[float]:
        """Running maximum drawdown after each update."""
        return list(self._history)
