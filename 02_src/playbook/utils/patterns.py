"""Casting of listener and branch patterns to compiled regular expressions."""

import re

from ..errors import ConfigError

_DELIMITED = re.compile(r"^/(.+)/([a-z]*)$", re.DOTALL)
_BARE_WORDS = re.compile(r"^[\w\s'-]+$")
_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "g": 0,
    "u": 0,
}

Pattern = re.Pattern | str


def parse_pattern(value: Pattern) -> re.Pattern:
    """
    Compile a pattern from any of its accepted forms.

    - a compiled regex is returned as is
    - a delimited string like "/door (\\d)/i" compiles its body with flags
    - bare words like "yes please" match those words, case-insensitive

    Raises:
        ConfigError: the value can't be used as a pattern
    """
    if isinstance(value, re.Pattern):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Can't be used as a pattern: {value!r}")

    delimited = _DELIMITED.match(value)
    if delimited:
        body, letters = delimited.groups()
        flags = 0
        for letter in letters:
            if letter not in _FLAGS:
                raise ConfigError(f"Unknown pattern flag {letter!r} in {value!r}")
            flags |= _FLAGS[letter]
        try:
            return re.compile(body, flags)
        except re.error as e:
            raise ConfigError(f"Invalid pattern {value!r}: {e}") from e

    if _BARE_WORDS.match(value):
        words = r"\s+".join(re.escape(word) for word in value.split())
        return re.compile(rf"\b{words}\b", re.IGNORECASE)

    raise ConfigError(f"Can't be used as a pattern: {value!r}")
