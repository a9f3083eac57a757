"""Rich console shared by the CLI layer.

Output goes to stderr so that stdout stays free for anything a caller
might pipe.  ``rich`` is imported lazily; a missing install surfaces as
:class:`~yt_relay.exceptions.EnvironmentError` on first use.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from yt_relay.exceptions import EnvironmentError


@lru_cache(maxsize=1)
def get_rich_console() -> Any:
	"""Return the process-wide ``rich.console.Console`` targeting stderr."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console(stderr=True)


class _ConsoleProxy:
	"""Defers console creation until something is printed."""

	def print(self, *objects: object) -> None:
		get_rich_console().print(*objects)


console = _ConsoleProxy()
