from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, TypeAlias

from featurekit.activation import Condition, is_condition

DependencyType = Literal["dependencies", "devDependencies"]
ALLOWED_DEPENDENCY_TYPES: tuple[str, ...] = ("dependencies", "devDependencies")

ScriptSource: TypeAlias = str | Callable[[Mapping[str, Any], Mapping[str, Any]], str]
EditFn: TypeAlias = Callable[[str, Mapping[str, Any]], None]

_PLACEHOLDER_RE = re.compile(r"{{\s*(\w+)\s*}}")


def fill_placeholders(text: str, values: Mapping[str, Any]) -> str:
    """Replace `{{key}}` with `values[key]`; unknown or empty keys are left untouched."""

    def _sub(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        if value is None or value == "":
            return match.group(0)
        return str(value)

    return _PLACEHOLDER_RE.sub(_sub, text)


def _non_empty(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TypeError(f"{label} must be a non-empty string")
    return value.strip()


def _optional_condition(value: Any, label: str) -> None:
    if value is not None and not is_condition(value):
        raise TypeError(f"{label} must be an activation condition or None (type={type(value).__name__})")


@dataclass(frozen=True)
class DependencyRequest:
    name: str | tuple[str, ...]
    workspace: str
    type: DependencyType = "dependencies"
    version: str | None = None
    force: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.name, str):
            _non_empty(self.name, "DependencyRequest.name")
            object.__setattr__(self, "name", self.name.strip())
        elif isinstance(self.name, (list, tuple)):
            if not self.name:
                raise ValueError("DependencyRequest.name must list at least one package")
            names = tuple(_non_empty(n, "DependencyRequest.name[]") for n in self.name)
            object.__setattr__(self, "name", names)
        else:
            raise TypeError(
                f"DependencyRequest.name must be a string or list of strings (type={type(self.name).__name__})"
            )

        object.__setattr__(self, "workspace", _non_empty(self.workspace, "DependencyRequest.workspace"))

        if self.type not in ALLOWED_DEPENDENCY_TYPES:
            raise ValueError(
                f"DependencyRequest.type must be one of: {', '.join(ALLOWED_DEPENDENCY_TYPES)} (got {self.type!r})"
            )
        if self.version is not None:
            object.__setattr__(self, "version", _non_empty(self.version, "DependencyRequest.version"))
        if not isinstance(self.force, bool):
            raise TypeError("DependencyRequest.force must be a boolean")

    @property
    def names(self) -> tuple[str, ...]:
        if isinstance(self.name, str):
            return (self.name,)
        return tuple(self.name)

    def expand(self, feature_config: Mapping[str, Any] | None = None) -> list["DependencyRequest"]:
        """One single-name request per name, with workspace placeholders filled."""

        workspace = fill_placeholders(self.workspace, feature_config or {})
        return [
            DependencyRequest(
                name=name,
                workspace=workspace,
                type=self.type,
                version=self.version,
                force=self.force,
            )
            for name in self.names
        ]


@dataclass(frozen=True)
class ScriptStep:
    command: ScriptSource
    directory: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.command, str):
            _non_empty(self.command, "ScriptStep.command")
        elif not callable(self.command):
            raise TypeError(
                f"ScriptStep.command must be a string or callable (type={type(self.command).__name__})"
            )
        if self.directory is not None:
            object.__setattr__(self, "directory", _non_empty(self.directory, "ScriptStep.directory"))

    def render(self, args: Mapping[str, Any], feature_config: Mapping[str, Any]) -> str:
        if isinstance(self.command, str):
            return fill_placeholders(self.command, feature_config)
        text = self.command(args, feature_config)
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"Script builder produced an empty command: {self.command!r}")
        return text


@dataclass(frozen=True)
class TemplateInstruction:
    source: str
    destination: str
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", _non_empty(self.source, "TemplateInstruction.source"))
        if not isinstance(self.destination, str):
            raise TypeError("TemplateInstruction.destination must be a string")
        if not isinstance(self.context, Mapping):
            raise TypeError("TemplateInstruction.context must be a mapping")


@dataclass(frozen=True)
class FileEdit:
    path: str
    edits: tuple[EditFn, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", _non_empty(self.path, "FileEdit.path"))
        edits = tuple(self.edits) if isinstance(self.edits, (list, tuple)) else (self.edits,)
        if not edits:
            raise ValueError(f"FileEdit for {self.path} declares no edits")
        for fn in edits:
            if not callable(fn):
                raise TypeError(f"FileEdit.edits must be callables (path={self.path})")
        object.__setattr__(self, "edits", edits)


@dataclass(frozen=True)
class Stage:
    name: str
    activated_by: Condition | None = None
    dependencies: tuple[DependencyRequest, ...] = ()
    scripts: tuple[ScriptStep, ...] = ()
    templates: tuple[TemplateInstruction, ...] = ()
    edits: tuple[FileEdit, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _non_empty(self.name, "Stage.name"))
        _optional_condition(self.activated_by, f"Stage({self.name}).activated_by")
        for attr, kind in (
            ("dependencies", DependencyRequest),
            ("scripts", ScriptStep),
            ("templates", TemplateInstruction),
            ("edits", FileEdit),
        ):
            items = tuple(getattr(self, attr))
            for idx, item in enumerate(items):
                if not isinstance(item, kind):
                    raise TypeError(
                        f"Stage({self.name}).{attr}[{idx}] must be a {kind.__name__} "
                        f"(type={type(item).__name__})"
                    )
            object.__setattr__(self, attr, items)

    def is_empty(self) -> bool:
        return not (self.dependencies or self.scripts or self.templates or self.edits)


@dataclass(frozen=True)
class Feature:
    id: str
    name: str | None = None
    description: str | None = None
    depends_on: tuple[str, ...] = ()
    activated_by: Condition | None = None
    configuration: tuple[Mapping[str, Any], ...] = ()
    stages: tuple[Stage, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", _non_empty(self.id, "Feature.id"))
        if self.name is None:
            object.__setattr__(self, "name", self.id)

        depends_on = tuple(_non_empty(dep, f"Feature({self.id}).depends_on[]") for dep in self.depends_on)
        if self.id in depends_on:
            raise ValueError(f"Feature {self.id} cannot depend on itself")
        object.__setattr__(self, "depends_on", depends_on)

        _optional_condition(self.activated_by, f"Feature({self.id}).activated_by")
        object.__setattr__(self, "configuration", tuple(self.configuration))

        stages = tuple(self.stages)
        seen: set[str] = set()
        for stage in stages:
            if not isinstance(stage, Stage):
                raise TypeError(f"Feature({self.id}).stages must contain Stage objects")
            if stage.name in seen:
                raise ValueError(f"Duplicate stage name in feature {self.id}: {stage.name}")
            seen.add(stage.name)
        object.__setattr__(self, "stages", stages)
