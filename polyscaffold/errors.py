from __future__ import annotations

from featurekit.errors import (
    CircularDependencyError,
    FeatureGraphError,
    ScriptExecutionError,
    UnknownFeatureError,
)


class DependencyConflictError(ValueError):
    def __init__(self, name: str, workspace: str, reason: str) -> None:
        self.name = name
        self.workspace = workspace
        self.reason = reason
        super().__init__(f"Cannot add {name} to {workspace}: {reason}. Use force=true to override.")


class FileSystemError(OSError):
    """Manifest or catalog document could not be read, parsed or written."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class ConfigValidationError(ValueError):
    def __init__(self, errors: list[str] | tuple[str, ...], *, path: str | None = None) -> None:
        self.errors = tuple(errors)
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(f"Invalid dependency settings{where}: " + "; ".join(self.errors))


__all__ = [
    "CircularDependencyError",
    "ConfigValidationError",
    "DependencyConflictError",
    "FeatureGraphError",
    "FileSystemError",
    "ScriptExecutionError",
    "UnknownFeatureError",
]
