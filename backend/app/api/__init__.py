"""API endpoints."""

from app.api.routes import router, get_session

__all__ = [
    "router",
    "get_session",
]
