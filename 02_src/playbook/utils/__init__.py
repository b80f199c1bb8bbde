"""Shared utilities."""

from .middleware import IErrorSink, Middleware, Piece
from .paths import (
    PathSyntaxError,
    defaults_deep,
    get_path,
    is_subset,
    parse_path,
    set_path,
    unset_path,
)
from .patterns import parse_pattern

__all__ = [
    "IErrorSink",
    "Middleware",
    "Piece",
    "PathSyntaxError",
    "defaults_deep",
    "get_path",
    "is_subset",
    "parse_path",
    "set_path",
    "unset_path",
    "parse_pattern",
]
