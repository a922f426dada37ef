# ug/errors.py
"""Exceptions raised by the alias registry, parser and runner."""


class UgError(RuntimeError):
    """Base class for errors reported to the user without a traceback."""


class ConfigUnavailable(UgError):
    """Raised when no home directory is available for the config file."""


class MalformedConfig(UgError):
    """Raised when the config file is not a JSON object of strings."""


class InvalidAlias(UgError):
    """Raised when an alias name or command cannot be registered."""


class UnknownCommand(UgError):
    """Raised when an alias name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} is not registered")


class EmptyStage(UgError):
    """Raised when a pipeline stage has no program to run."""

    def __init__(self, index: int, command: str):
        self.index = index
        self.command = command
        super().__init__(f"Stage {index} of {command!r} is empty")


class SpawnFailure(UgError):
    """Raised when a pipeline stage could not be started."""

    def __init__(self, index: int, stage, cause: OSError):
        self.index = index
        self.stage = stage
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(f"Cannot start stage {index} ({stage}): {reason}")
