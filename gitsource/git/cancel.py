"""Cooperative cancellation and deadlines for git operations."""

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from gitsource.config import get_default_timeout
from gitsource.errors import Cancelled, DeadlineExceeded


@dataclass(frozen=True)
class Cancellation:
    """
    Deadline and cancel signal shared by the steps of one resolution.

    Args:
        timeout: Seconds from creation after which operations are aborted
        event: Set by the caller to abort in-flight operations
    """

    timeout: Optional[float] = None
    event: Optional[threading.Event] = None
    started: float = field(default_factory=time.monotonic, compare=False)

    @classmethod
    def from_config(cls) -> "Cancellation":
        return cls(timeout=get_default_timeout())

    def remaining(self) -> Optional[float]:
        if self.timeout is None:
            return None
        return self.timeout - (time.monotonic() - self.started)

    def check(self, operation: str = "git operation") -> None:
        """
        Raises:
            Cancelled: the cancel event is set
            DeadlineExceeded: the timeout has elapsed
        """
        if self.event is not None and self.event.is_set():
            raise Cancelled(f"{operation} was cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceeded(
                f"{operation} did not complete within {self.timeout:g}s"
            )
