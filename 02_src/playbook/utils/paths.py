"""Data-path expressions: parsing, lookup and nested merging.

A path is a restricted expression such as ``user.name``, ``this.user.name``,
``match[1]`` or ``data['first name']``. Nothing is evaluated beyond item and
attribute lookup.
"""

import copy
import re
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any

PathSegment = str | int

_MISSING = object()
_IDENT = re.compile(r"[A-Za-z_$][\w$]*")
_INT = re.compile(r"-?\d+")


class PathSyntaxError(ValueError):
    """Expression is not a plain data path."""


class _PathParser:
    """Recursive-descent parser for path expressions.

    path    := ["this" ("." | end)] segment trailer*
    segment := IDENT
    trailer := "." IDENT | "[" (INT | QUOTED) "]"
    """

    def __init__(self, text: str):
        self.text = text.strip()
        self.pos = 0

    def parse(self) -> list[PathSegment]:
        if not self.text:
            raise PathSyntaxError("Empty path")
        segments = [self._segment()]
        if segments == ["this"]:
            if self._at_end():
                return []
            self._expect(".")
            segments = [self._segment()]
        while not self._at_end():
            segments.append(self._trailer())
        return segments

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _peek(self) -> str:
        return self.text[self.pos] if not self._at_end() else ""

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            raise PathSyntaxError(
                f"Expected {char!r} at {self.pos} in {self.text!r}"
            )
        self.pos += 1

    def _segment(self) -> str:
        match = _IDENT.match(self.text, self.pos)
        if not match:
            raise PathSyntaxError(f"Expected name at {self.pos} in {self.text!r}")
        self.pos = match.end()
        return match.group()

    def _trailer(self) -> PathSegment:
        if self._peek() == ".":
            self.pos += 1
            return self._segment()
        self._expect("[")
        segment = self._index()
        self._expect("]")
        return segment

    def _index(self) -> PathSegment:
        quote = self._peek()
        if quote in ("'", '"'):
            end = self.text.find(quote, self.pos + 1)
            if end < 0:
                raise PathSyntaxError(f"Unclosed quote in {self.text!r}")
            key = self.text[self.pos + 1 : end]
            self.pos = end + 1
            return key
        match = _INT.match(self.text, self.pos)
        if not match:
            raise PathSyntaxError(f"Expected index at {self.pos} in {self.text!r}")
        self.pos = match.end()
        return int(match.group())


@lru_cache(maxsize=256)
def _parse_cached(text: str) -> tuple[PathSegment, ...]:
    return tuple(_PathParser(text).parse())


def parse_path(path: str | Sequence[PathSegment]) -> list[PathSegment]:
    """Split a path expression into segments."""
    if isinstance(path, str):
        return list(_parse_cached(path))
    return list(path)


def _step(value: Any, segment: PathSegment) -> Any:
    if isinstance(value, re.Match) and isinstance(segment, int):
        try:
            return value.group(segment)
        except IndexError:
            raise KeyError(segment) from None
    if isinstance(value, Mapping):
        return value[segment]
    if isinstance(segment, int):
        if isinstance(value, Sequence) and not isinstance(value, str):
            try:
                return value[segment]
            except IndexError:
                raise KeyError(segment) from None
        raise KeyError(segment)
    if segment.startswith("_"):
        raise KeyError(segment)
    try:
        return getattr(value, segment)
    except AttributeError:
        raise KeyError(segment) from None


def get_path(obj: Any, path: str | Sequence[PathSegment], default: Any = _MISSING) -> Any:
    """
    Look up the value at a path.

    Raises:
        KeyError: path doesn't resolve and no default was given
    """
    value = obj
    try:
        for segment in parse_path(path):
            value = _step(value, segment)
    except KeyError:
        if default is _MISSING:
            raise
        return default
    return value


def set_path(obj: dict, path: str | Sequence[PathSegment], value: Any) -> dict:
    """Set a value in nested dicts, creating intermediate dicts."""
    segments = parse_path(path)
    if not segments:
        raise PathSyntaxError("Can't set an empty path")
    target = obj
    for segment in segments[:-1]:
        if not isinstance(target.get(segment), dict):
            target[segment] = {}
        target = target[segment]
    target[segments[-1]] = value
    return obj


def unset_path(obj: dict, path: str | Sequence[PathSegment]) -> bool:
    """Remove the value at a path, returning whether anything was removed."""
    segments = parse_path(path)
    if not segments:
        return False
    try:
        parent = get_path(obj, segments[:-1]) if len(segments) > 1 else obj
    except KeyError:
        return False
    if isinstance(parent, dict) and segments[-1] in parent:
        del parent[segments[-1]]
        return True
    return False


def is_subset(subset: Any, target: Any) -> bool:
    """Partial deep comparison: every part of subset is present in target."""
    if isinstance(subset, Mapping):
        if not isinstance(target, Mapping):
            return False
        return all(
            key in target and is_subset(value, target[key])
            for key, value in subset.items()
        )
    if isinstance(subset, list):
        if not isinstance(target, list):
            return False
        return all(any(is_subset(item, other) for other in target) for item in subset)
    return subset == target


def defaults_deep(target: dict, *sources: Mapping | None) -> dict:
    """Fill missing keys of target from each source in turn, recursively."""
    for source in sources:
        if not source:
            continue
        for key, value in source.items():
            if key not in target:
                target[key] = copy.deepcopy(value)
            elif isinstance(target[key], dict) and isinstance(value, Mapping):
                defaults_deep(target[key], value)
    return target
