"""HTTP exposure of the access-control core."""

from src.access_control.api.router import access_router, create_app

__all__ = ["access_router", "create_app"]
