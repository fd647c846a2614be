"""HTTP API for Solarcrew.

FastAPI application exposing the project lifecycle and reclamation
workflows, with request logging and workflow error mapping.
"""

from __future__ import annotations

from solarcrew.web.app import create_app
from solarcrew.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "RequestLoggingMiddleware",
]
