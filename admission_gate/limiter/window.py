"""Fixed-window clock.

A window id is ``floor(unix_seconds / window_seconds)``. Two timestamps that
fall into the same bucket since the epoch share an id; this is the only
boundary the limiter enforces, so a caller can land up to ``2 x quota``
requests in a short span straddling a window edge.
"""

from __future__ import annotations

import time
from typing import Callable

from admission_gate.core.errors import ConfigurationError


class WindowClock:
    """Derive window identifiers from wall-clock time."""

    def __init__(
        self,
        window_seconds: int = 60,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the clock.

        Args:
            window_seconds: Window length in whole seconds.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ConfigurationError: If window_seconds is not a positive integer.
        """
        if isinstance(window_seconds, bool) or not isinstance(window_seconds, int):
            raise ConfigurationError(
                code="invalid_window_length",
                message="Window length must be an integer number of seconds",
                details={"field": "window_seconds", "actual_value": window_seconds},
            )
        if window_seconds < 1:
            raise ConfigurationError(
                code="invalid_window_length",
                message="Window length must be a positive number of seconds",
                details={"field": "window_seconds", "actual_value": window_seconds},
            )

        self._window_seconds = window_seconds
        self._clock = clock

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def current_window(self) -> int:
        """Return the id of the window containing the current time."""
        return int(self._clock() // self._window_seconds)

    def reset_at(self, window_id: int) -> int:
        """Return the epoch second at which ``window_id`` ends."""
        return (window_id + 1) * self._window_seconds
