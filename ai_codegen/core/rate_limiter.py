"""
Outbound request rate limiting.

Implements the generic cell rate algorithm (GCRA), a continuous-rate
equivalent of the leaky bucket. Admission is decided immediately: requests
over the rate are denied, never queued or delayed.
"""

import time
from enum import Enum, auto
from typing import Callable

DEFAULT_RATE = 1000
DEFAULT_PERIOD_SECONDS = 1.0

# Absorbs float drift from accumulating emission intervals.
_EPSILON = 1e-9


class Admission(Enum):
    """Outcome of a rate limiter check."""
    ALLOW = auto()
    DENY = auto()


class GCRARateLimiter:
    """Non-blocking GCRA limiter allowing ``rate`` requests per ``period``.

    The burst tolerance admits a full quota at once, after which requests
    are admitted at one per emission interval (period / rate).

    State is a single theoretical arrival time (TAT). Not safe for
    concurrent use without external locking.
    """

    def __init__(
        self,
        rate: int = DEFAULT_RATE,
        period: float = DEFAULT_PERIOD_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize the limiter.

        Args:
            rate: Requests admitted per period (must be > 0)
            period: Period length in seconds (must be > 0)
            clock: Monotonic time source in seconds

        Raises:
            ValueError: If rate or period is not positive
        """
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if period <= 0:
            raise ValueError("period must be > 0")

        self.rate = rate
        self.period = float(period)
        self.emission_interval = self.period / rate
        self.burst_tolerance = self.period - self.emission_interval
        self._clock = clock
        self._tat = clock()

    def check(self) -> Admission:
        """Admit or deny one request at the current time.

        A denial leaves the limiter state unchanged.
        """
        now = self._clock()
        tat = max(self._tat, now)

        if tat - now > self.burst_tolerance + _EPSILON:
            return Admission.DENY

        self._tat = tat + self.emission_interval
        return Admission.ALLOW
