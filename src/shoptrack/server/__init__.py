"""ASGI application factory and dependencies for the Shoptrack server."""

from shoptrack.server.app import app, create_app

__all__ = ["app", "create_app"]
