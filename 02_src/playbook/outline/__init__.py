"""Outline module."""

from .models import Bit
from .outline import Outline

__all__ = ["Bit", "Outline"]
