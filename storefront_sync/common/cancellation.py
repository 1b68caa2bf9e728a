"""
Cooperative cancellation for long-running sync runs.

Loops check the token between iterations; nothing is interrupted mid-step.
"""

import threading


class CancellationToken:
    """Thread-safe flag shared between a run and whoever may cancel it."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()
