"""Exception hierarchy for Playbook."""


class PlaybookError(Exception):
    """Base class for all Playbook errors."""


class ConfigError(PlaybookError, ValueError):
    """Invalid construction or configuration of a module."""


class HandlerError(PlaybookError):
    """A user-supplied handler, callback or middleware piece failed."""

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.context = context


class AlreadyEngagedError(PlaybookError):
    """Participants are already engaged in a scene's dialogue."""
