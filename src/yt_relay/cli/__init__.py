"""CLI layer: ``serve`` and ``doctor`` commands plus the error boundary.

This package is the outermost layer of the application.  It may import
from ``api``, ``core``, ``infra`` and ``utils``; no other layer imports
from ``cli``.
"""
