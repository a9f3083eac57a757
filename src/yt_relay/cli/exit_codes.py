"""Exit codes returned by the ``yt-relay`` command."""

from __future__ import annotations

SUCCESS: int = 0
"""Command completed (for ``serve``: the server shut down cleanly)."""

GENERAL_ERROR: int = 1
"""A known YtRelayError was caught, or a doctor check failed."""

UNEXPECTED_ERROR: int = 2
"""An unhandled exception escaped every known error boundary."""

KEYBOARD_INTERRUPT: int = 130
"""Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""
