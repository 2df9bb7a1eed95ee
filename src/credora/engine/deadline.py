import threading
import time

from credora.domain.errors import QuoteCancelledError


class Deadline:
    """Caller-supplied time budget and cancellation signal for quoting."""

    def __init__(self, timeout: float | None = None, cancel_event: threading.Event | None = None):
        self.expires_at = time.monotonic() + timeout if timeout is not None else None
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self) -> None:
        if self.cancel_event.is_set():
            raise QuoteCancelledError("Quote cancelled by caller")
        if self.expired:
            raise QuoteCancelledError("Quote deadline exceeded")
