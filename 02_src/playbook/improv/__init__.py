"""Improv module."""

from .improv import BRAIN_KEY, EXPRESSION, Extension, Improv

__all__ = ["BRAIN_KEY", "EXPRESSION", "Extension", "Improv"]
