"""Module observer: minimal synchronous signal/slot implementation."""
#
# PURPOSE:
# Lets stores announce state changes (findings changed, settings changed,
# storage changed) without knowing who is listening.
#
# INTEGRATION:
# - Used by: data.kv_store, data.findings_store, base.settings, alerts
#

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class Signal:
    """
    A simple pure-Python signal.
    """
    def __init__(self):
        self._observers: List[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]):
        """Subscribe a callback function."""
        if callback not in self._observers:
            self._observers.append(callback)

    def disconnect(self, callback: Callable[..., Any]):
        """Unsubscribe a callback function."""
        if callback in self._observers:
            self._observers.remove(callback)

    def emit(self, *args, **kwargs):
        """Notify all subscribers."""
        for callback in list(self._observers):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                # One failing subscriber must not starve the others
                logger.error(f"[Signal] Error in observer callback: {e}", exc_info=e)

    def __len__(self) -> int:
        return len(self._observers)
