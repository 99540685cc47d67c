"""
Cancellation Token - Caller-Controlled Abort of a Merge

The merge engine checks the token between steps; a cancelled token aborts
the whole merge, not just the gateway call in flight.

Author: Shubham Singh
Date: December 2025
"""

import threading

from clinical_note_update.core.enums import MergeState
from clinical_note_update.core.exceptions import MergeCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()  # from another thread
        >>> token.raise_if_cancelled(MergeState.GENERATING)
        Traceback (most recent call last):
        MergeCancelledError: Merge cancelled [state=GENERATING]
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, state: MergeState) -> None:
        """Raise MergeCancelledError if cancel() has been called."""
        if self._event.is_set():
            raise MergeCancelledError(state.value)
