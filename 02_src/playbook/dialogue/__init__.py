"""Dialogue module."""

from .dialogue import Dialogue, TimeoutHandler
from .path import Branch, BranchCallback, Path

__all__ = ["Dialogue", "TimeoutHandler", "Branch", "BranchCallback", "Path"]
