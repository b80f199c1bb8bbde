"""Transcript module."""

from .transcript import BRAIN_KEY, Transcript

__all__ = ["BRAIN_KEY", "Transcript"]
