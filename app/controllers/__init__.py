"""FastAPI routers acting as controllers in the MVC architecture."""

from . import analyze

__all__ = ["analyze"]
