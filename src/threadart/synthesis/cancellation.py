"""
Cooperative cancellation for long-running pattern generation.

Callers running a generation on a worker thread hold a CancelToken and set
it from another thread. The synthesizer and refiner check it once per outer
iteration and abandon their partial result.
"""

import threading


class GenerationCancelled(Exception):
    """Raised when a run is aborted through its CancelToken."""


class CancelToken:
    """Thread-safe cancel flag."""

    def __init__(self):
        self._flag = threading.Event()

    def cancel(self):
        self._flag.set()

    @property
    def cancelled(self):
        return self._flag.is_set()

    def raise_if_cancelled(self, stage=""):
        if self._flag.is_set():
            raise GenerationCancelled(f"Generation cancelled during {stage or 'run'}")
