"""Scripted conversation driving the API."""

from .sim import ISim, Sim

__all__ = ["ISim", "Sim"]
