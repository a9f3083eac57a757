"""HTTP layer: FastAPI routes, JSON serializers and the ASGI relay sink.

May import from ``core``, ``infra`` and ``utils``; nothing imports from
``api`` except ``cli``.
"""

from yt_relay.api.app import build_services, create_app

__all__: list[str] = ["build_services", "create_app"]
