import threading


class CancellationToken:
    """Thread-safe cancellation flag shared by one session and its worker."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()
