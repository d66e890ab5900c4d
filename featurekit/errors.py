from __future__ import annotations

from typing import Sequence


class FeatureGraphError(ValueError):
    """Structural problem in the feature registry (raised before any mutation)."""


class UnknownFeatureError(FeatureGraphError):
    def __init__(
        self,
        feature_id: str,
        *,
        referenced_by: str | None = None,
        suggestions: Sequence[str] = (),
    ) -> None:
        self.feature_id = feature_id
        self.referenced_by = referenced_by
        self.suggestions = tuple(suggestions)

        message = f"Unknown feature id: {feature_id}"
        if referenced_by:
            message += f" (referenced by: {referenced_by})"
        if self.suggestions:
            message += f" (did you mean: {', '.join(self.suggestions)})"
        super().__init__(message)


class CircularDependencyError(FeatureGraphError):
    def __init__(self, feature_id: str, *, cycle: Sequence[str] = ()) -> None:
        self.feature_id = feature_id
        self.cycle = tuple(cycle)
        message = f"Circular dependency detected involving {feature_id}"
        if self.cycle:
            message += f" ({' -> '.join(self.cycle)})"
        super().__init__(message)


class ScriptExecutionError(RuntimeError):
    def __init__(
        self,
        command: str,
        *,
        directory: str,
        returncode: int | None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = command
        self.directory = directory
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.feature_id: str | None = None
        self.stage_name: str | None = None
        super().__init__(
            f"Script failed (exit={returncode}, dir={directory}): {command}"
        )

    def __str__(self) -> str:
        base = super().__str__()
        if self.feature_id and self.stage_name:
            return f"{base} [feature={self.feature_id}, stage={self.stage_name}]"
        return base

