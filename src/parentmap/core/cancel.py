"""
Cancellation tokens for dataset loads.

A caller that may be torn down while a fetch is outstanding passes a token into the
ingestion client. The client checks it after the fetch resolves and before writing
into the cache; a cancelled load is discarded.
"""

from __future__ import annotations

import threading


class CancelToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
