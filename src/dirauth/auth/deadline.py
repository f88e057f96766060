"""
Per-attempt deadline and cancellation.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

import attrs

from dirauth.core.exceptions import DirectoryUnavailable


@attrs.define
class Deadline:
    """
    Time budget for one authentication attempt.

    Checked before every directory or account store call. An expired or
    cancelled deadline aborts the attempt with DirectoryUnavailable.

    Example:
        cancel = threading.Event()
        deadline = Deadline(timeout=5.0, cancel_event=cancel)
        authenticator.authenticate("jdoe", "secret", 1, deadline=deadline)
    """

    timeout: Optional[float] = attrs.field(
        default=None,
        validator=attrs.validators.optional(attrs.validators.ge(0)),
    )
    cancel_event: Optional[threading.Event] = None
    clock: Callable[[], float] = time.monotonic
    _started: float = attrs.field(init=False)

    def __attrs_post_init__(self) -> None:
        self._started = self.clock()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def cancel(self) -> None:
        if self.cancel_event is None:
            self.cancel_event = threading.Event()
        self.cancel_event.set()

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when the attempt is unbounded."""
        if self.timeout is None:
            return None
        return max(0.0, self.timeout - (self.clock() - self._started))

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, operation: str) -> None:
        """Raise DirectoryUnavailable if the attempt must stop before operation."""
        if self.cancelled:
            raise DirectoryUnavailable(f"Authentication cancelled before {operation}")
        if self.expired:
            raise DirectoryUnavailable(
                f"Authentication timed out after {self.timeout}s before {operation}"
            )
