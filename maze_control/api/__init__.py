"""HTTP surface: FastAPI app factory, sessions and routes."""

from maze_control.api.server import create_app

__all__ = ["create_app"]
