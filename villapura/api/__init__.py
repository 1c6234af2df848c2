"""HTTP surface of the booking backend."""

from .main import create_app

__all__ = ["create_app"]
