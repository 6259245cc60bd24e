"""
Per-call cancellation and deadline context.

Every remote read takes a CallContext. It is immutable and carries no
client state, so the same context can be shared by calls for different
holders running in parallel.
"""

import threading
import time
from dataclasses import dataclass
from typing import Optional

from minime_proofs.shared.exceptions import OperationCancelled


@dataclass(frozen=True)
class CallContext:
    """
    Cancellation signal and deadline for a chain of remote calls.

    Attributes:
        deadline: Absolute time.monotonic() value after which calls abort
        cancel_event: Event set by the caller to abort outstanding work
    """

    deadline: Optional[float] = None
    cancel_event: Optional[threading.Event] = None

    @classmethod
    def with_timeout(
        cls, seconds: float, cancel_event: Optional[threading.Event] = None
    ) -> "CallContext":
        """Create a context expiring `seconds` from now."""
        return cls(
            deadline=time.monotonic() + seconds, cancel_event=cancel_event
        )

    def check(self, operation: str) -> None:
        """Raise OperationCancelled if the caller gave up on `operation`."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelled(
                f"{operation} cancelled", context={"operation": operation}
            )
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise OperationCancelled(
                f"{operation} exceeded its deadline",
                context={"operation": operation},
            )

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())


BACKGROUND = CallContext()
