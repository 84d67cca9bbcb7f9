"""REST API: the FastAPI application and its routers."""

from imagineer.api.app import create_app

__all__ = ["create_app"]
