"""API router for the WebCore Audit application."""

from app.api.routes import router

__all__ = ["router"]
