from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from featurekit.config_namespace import ConfigNamespace
from polyscaffold.dependencies.versions import VERSION_STRATEGIES
from polyscaffold.errors import ConfigValidationError, FileSystemError
from polyscaffold.foundation.config_io import (
    SETTINGS_FILENAMES,
    dump_yaml,
    load_settings_document,
    load_yaml_mapping,
    settings_path,
)

logger = logging.getLogger(__name__)

SETTINGS_KEY = "dependencyManagement"

DEFAULT_COMMON_DEPENDENCIES: tuple[str, ...] = (
    "typescript",
    "@types/node",
    "eslint",
    "prettier",
    "@apollo/client",
    "graphql",
    "@graphql-codegen/cli",
    "@graphql-codegen/typescript",
    "@graphql-codegen/typescript-operations",
    "react",
    "@types/react",
)

DEFAULT_WORKSPACE_SPECIFIC: dict[str, tuple[str, ...]] = {
    "api": ("@prisma/client", "prisma", "@apollo/server"),
    "mobile": ("expo", "react-native"),
    "web": ("vite", "react-dom"),
}


@dataclass(frozen=True)
class DependencySettings:
    auto_catalog: bool = True
    catalog_threshold: int = 2
    common_dependencies: tuple[str, ...] = DEFAULT_COMMON_DEPENDENCIES
    workspace_specific: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_WORKSPACE_SPECIFIC)
    )
    auto_optimize: bool = False
    version_strategy: str = "caret"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None, *, path: str = SETTINGS_KEY) -> "DependencySettings":
        """Parse a `dependencyManagement` mapping; missing keys take defaults, unknown keys fail."""

        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ConfigValidationError([f"{path} must be a mapping (type={type(raw).__name__})"])

        defaults = cls()
        ns = ConfigNamespace(dict(raw), path=path)
        errors: list[str] = []

        def _read(fn, *args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except (TypeError, ValueError) as exc:
                errors.append(str(exc))
                return kwargs.get("default")

        auto_catalog = _read(ns.get_bool, "autoCatalog", default=defaults.auto_catalog)
        threshold = _read(ns.get_int, "catalogThreshold", default=defaults.catalog_threshold, min_value=1)
        common = _read(
            ns.get_list_str, "commonDependencies", default=list(defaults.common_dependencies)
        )
        specific = _read(
            ns.get_mapping_list_str,
            "workspaceSpecific",
            default={k: list(v) for k, v in defaults.workspace_specific.items()},
        )
        auto_optimize = _read(ns.get_bool, "autoOptimize", default=defaults.auto_optimize)
        strategy = _read(
            ns.get_str, "versionStrategy", default=defaults.version_strategy, choices=VERSION_STRATEGIES
        )
        try:
            ns.assert_consumed()
        except ValueError as exc:
            errors.append(str(exc))

        if errors:
            raise ConfigValidationError(errors)

        return cls(
            auto_catalog=auto_catalog,
            catalog_threshold=threshold,
            common_dependencies=tuple(common),
            workspace_specific={k: tuple(v) for k, v in specific.items()},
            auto_optimize=auto_optimize,
            version_strategy=strategy,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "autoCatalog": self.auto_catalog,
            "catalogThreshold": self.catalog_threshold,
            "commonDependencies": list(self.common_dependencies),
            "workspaceSpecific": {k: list(v) for k, v in self.workspace_specific.items()},
            "autoOptimize": self.auto_optimize,
            "versionStrategy": self.version_strategy,
        }

    def is_common(self, name: str) -> bool:
        return name in self.common_dependencies

    def with_overrides(self, overrides: Mapping[str, Any]) -> "DependencySettings":
        merged = self.to_dict()
        merged.update(dict(overrides))
        return DependencySettings.from_dict(merged)


class SettingsStore:
    """Reads and writes the `dependencyManagement` block of the project settings file."""

    def __init__(self, root_path: str) -> None:
        self.root_path = os.path.abspath(root_path)

    @property
    def path(self) -> str:
        return settings_path(self.root_path) or os.path.join(self.root_path, SETTINGS_FILENAMES[0])

    def exists(self) -> bool:
        return settings_path(self.root_path) is not None

    def read_document(self) -> dict[str, Any]:
        try:
            doc, meta = load_settings_document(self.root_path)
        except ValueError as exc:
            raise ConfigValidationError([str(exc)], path=self.path) from exc
        except OSError as exc:
            raise FileSystemError(f"Failed to read settings: {exc}", path=self.path) from exc
        logger.debug("Settings loaded (mode=%s, paths=%s)", meta["mode"], meta["paths"])
        return doc

    def load(self) -> DependencySettings:
        doc = self.read_document()
        try:
            return DependencySettings.from_dict(doc.get(SETTINGS_KEY))
        except ConfigValidationError as exc:
            raise ConfigValidationError(exc.errors, path=self.path) from exc

    def write_document(self, doc: Mapping[str, Any]) -> None:
        # the local overlay is never written back; only the base file is
        path = self.path
        base: dict[str, Any] = {}
        if os.path.exists(path):
            try:
                base = load_yaml_mapping(path)
            except ValueError as exc:
                raise ConfigValidationError([str(exc)], path=path) from exc
        base.update(dict(doc))
        if path.endswith(".json"):
            content = json.dumps(base, indent=2, ensure_ascii=False) + "\n"
        else:
            content = dump_yaml(base)
        try:
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError as exc:
            raise FileSystemError(f"Failed to write settings: {exc}", path=path) from exc

    def save(self, settings: DependencySettings) -> None:
        self.write_document({SETTINGS_KEY: settings.to_dict()})

    def initialize(self) -> bool:
        """Write defaults when no `dependencyManagement` block exists; return True if written."""

        doc = self.read_document()
        if SETTINGS_KEY in doc:
            return False
        self.save(DependencySettings())
        logger.info("Initialized %s with default dependency management settings", self.path)
        return True

    def update(self, **changes: Any) -> DependencySettings:
        current = self.load()
        try:
            updated = replace(current, **changes)
        except TypeError as exc:
            raise ConfigValidationError([str(exc)], path=self.path) from exc
        # re-parse so updates pass the same validation as the file
        updated = DependencySettings.from_dict(updated.to_dict())
        self.save(updated)
        return updated

    def reset(self) -> DependencySettings:
        defaults = DependencySettings()
        self.save(defaults)
        logger.info("Reset dependency management configuration to defaults")
        return defaults

    def add_common_dependency(self, name: str) -> DependencySettings:
        current = self.load()
        if name in current.common_dependencies:
            return current
        updated = self.update(common_dependencies=tuple(sorted((*current.common_dependencies, name))))
        logger.info("Added %r to common dependencies", name)
        return updated

    def remove_common_dependency(self, name: str) -> DependencySettings:
        current = self.load()
        if name not in current.common_dependencies:
            return current
        updated = self.update(
            common_dependencies=tuple(n for n in current.common_dependencies if n != name)
        )
        logger.info("Removed %r from common dependencies", name)
        return updated

    def add_workspace_specific(self, workspace: str, names: list[str] | tuple[str, ...]) -> DependencySettings:
        current = self.load()
        specific = {k: list(v) for k, v in current.workspace_specific.items()}
        bucket = specific.setdefault(workspace, [])
        for name in names:
            if name not in bucket:
                bucket.append(name)
        bucket.sort()
        updated = self.update(workspace_specific={k: tuple(v) for k, v in specific.items()})
        logger.info("Added %d workspace-specific dependencies for %r", len(names), workspace)
        return updated

    def summary(self) -> dict[str, Any]:
        settings = self.load()
        return {
            "autoCatalog": settings.auto_catalog,
            "catalogThreshold": settings.catalog_threshold,
            "commonDependenciesCount": len(settings.common_dependencies),
            "workspaceSpecificCount": len(settings.workspace_specific),
            "autoOptimize": settings.auto_optimize,
            "versionStrategy": settings.version_strategy,
        }


__all__ = [
    "DEFAULT_COMMON_DEPENDENCIES",
    "DEFAULT_WORKSPACE_SPECIFIC",
    "DependencySettings",
    "SETTINGS_KEY",
    "SettingsStore",
]
