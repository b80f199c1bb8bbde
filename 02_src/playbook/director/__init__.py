"""Director module."""

from .director import Authorise, Director

__all__ = ["Authorise", "Director"]
