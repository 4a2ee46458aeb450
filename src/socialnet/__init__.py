"""Social network REST backend."""

from .api import app

__all__ = ["app"]
