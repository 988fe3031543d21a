"""Web routes (server-rendered pages)."""

from pullquest.web.router import web_router

__all__ = ["web_router"]
