"""Cancellation / deadline signal threaded through one collection request."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from ovnrecon.probe.errors import ProbeCancelledError


class Deadline:
    """Optional timeout plus an explicit cancel switch.

    Blocking calls ask :meth:`remaining` for their own timeout and call
    :meth:`check` between steps so that a cancelled request stops promptly.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = None if timeout is None else clock() + timeout
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left, or ``None`` when there is no timeout."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def check(self) -> None:
        if self.cancelled:
            raise ProbeCancelledError("probe cancelled")
        if self.expired:
            raise ProbeCancelledError("probe deadline exceeded")
