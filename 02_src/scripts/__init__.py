"""Conversation scripts loaded by the application."""

from . import async_count

SCRIPTS = [async_count.setup]

__all__ = ["SCRIPTS", "async_count"]
