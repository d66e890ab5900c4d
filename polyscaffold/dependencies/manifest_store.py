"""Per-workspace package manifests (`package.json`)."""

from __future__ import annotations

import copy
import json
import logging
import os
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from featurekit.feature_types import ALLOWED_DEPENDENCY_TYPES, DependencyType
from polyscaffold.dependencies.types import CATALOG_SENTINEL, ROOT_WORKSPACE, WorkspaceDependency
from polyscaffold.errors import FileSystemError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"


def is_root_workspace(workspace: str) -> bool:
    return workspace in (ROOT_WORKSPACE, ".", "")


def _types_for(type: DependencyType | None) -> tuple[str, ...]:
    if type is None:
        return ALLOWED_DEPENDENCY_TYPES
    if type not in ALLOWED_DEPENDENCY_TYPES:
        raise ValueError(f"Unknown dependency type: {type!r}")
    return (type,)


class ManifestStore:
    """
    Dependency operations over workspace manifests.

    Subclasses provide `manifest_path`, `read(workspace)` and
    `write(workspace, manifest)`; absent manifests read as `{}`.
    """

    def manifest_path(self, workspace: str) -> str:
        raise NotImplementedError

    def read(self, workspace: str) -> dict[str, Any]:
        raise NotImplementedError

    def write(self, workspace: str, manifest: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def dependencies(self, workspace: str) -> list[WorkspaceDependency]:
        manifest = self.read(workspace)
        path = self.manifest_path(workspace)
        found: list[WorkspaceDependency] = []
        for dep_type in ALLOWED_DEPENDENCY_TYPES:
            for name, version in (manifest.get(dep_type) or {}).items():
                found.append(
                    WorkspaceDependency(
                        name=name,
                        version=str(version),
                        type=dep_type,  # type: ignore[arg-type]
                        workspace=workspace,
                        manifest_path=path,
                    )
                )
        return found

    def has_dependency(self, workspace: str, name: str, type: DependencyType | None = None) -> bool:
        manifest = self.read(workspace)
        return any(name in (manifest.get(t) or {}) for t in _types_for(type))

    def get_dependency(self, workspace: str, name: str) -> WorkspaceDependency | None:
        manifest = self.read(workspace)
        for dep_type in ALLOWED_DEPENDENCY_TYPES:
            section = manifest.get(dep_type) or {}
            if name in section:
                return WorkspaceDependency(
                    name=name,
                    version=str(section[name]),
                    type=dep_type,  # type: ignore[arg-type]
                    workspace=workspace,
                    manifest_path=self.manifest_path(workspace),
                )
        return None

    def add_dependency(
        self, workspace: str, name: str, version: str, type: DependencyType = "dependencies"
    ) -> None:
        self.add_dependencies(workspace, [(name, version, type)])

    def add_dependencies(
        self, workspace: str, items: Iterable[tuple[str, str, DependencyType]]
    ) -> None:
        """Insert `(name, version, type)` items with a single write."""

        manifest = self.read(workspace)
        for name, version, dep_type in items:
            _types_for(dep_type)
            manifest.setdefault(dep_type, {})[name] = version
        self.write(workspace, manifest)

    def remove_dependency(self, workspace: str, name: str, type: DependencyType | None = None) -> bool:
        manifest = self.read(workspace)
        removed = False
        for dep_type in _types_for(type):
            section = manifest.get(dep_type)
            if section and name in section:
                del section[name]
                removed = True
        if removed:
            self.write(workspace, manifest)
        return removed

    def update_dependency(
        self, workspace: str, name: str, version: str, type: DependencyType | None = None
    ) -> None:
        manifest = self.read(workspace)
        updated = False
        for dep_type in _types_for(type):
            section = manifest.get(dep_type)
            if section and name in section:
                section[name] = version
                updated = True
        if not updated:
            raise KeyError(f"Dependency {name!r} not found in workspace {workspace!r}")
        self.write(workspace, manifest)

    def convert_to_catalog_reference(self, workspace: str, name: str) -> bool:
        """Rewrite every direct reference to `name` as the catalog sentinel; True if written."""

        manifest = self.read(workspace)
        changed = False
        for dep_type in ALLOWED_DEPENDENCY_TYPES:
            section = manifest.get(dep_type)
            if section and name in section and section[name] != CATALOG_SENTINEL:
                section[name] = CATALOG_SENTINEL
                changed = True
        if changed:
            self.write(workspace, manifest)
        return changed

    def uses_catalog_reference(self, workspace: str, name: str) -> bool:
        manifest = self.read(workspace)
        return any(
            (manifest.get(t) or {}).get(name) == CATALOG_SENTINEL for t in ALLOWED_DEPENDENCY_TYPES
        )

    def workspaces_with_dependency(
        self, workspaces: Sequence[str], name: str
    ) -> list[WorkspaceDependency]:
        found: list[WorkspaceDependency] = []
        for workspace in workspaces:
            dependency = self.get_dependency(workspace, name)
            if dependency is not None:
                found.append(dependency)
        return found

    def sort_dependencies(self, workspace: str) -> bool:
        manifest = self.read(workspace)
        changed = False
        for dep_type in ALLOWED_DEPENDENCY_TYPES:
            section = manifest.get(dep_type)
            if section:
                manifest[dep_type] = dict(sorted(section.items()))
                changed = True
        if changed:
            self.write(workspace, manifest)
        return changed

    def cleanup_empty_dependencies(self, workspace: str) -> bool:
        manifest = self.read(workspace)
        changed = False
        for dep_type in ALLOWED_DEPENDENCY_TYPES:
            if dep_type in manifest and not manifest[dep_type]:
                del manifest[dep_type]
                changed = True
        if changed:
            self.write(workspace, manifest)
        return changed


class JsonManifestStore(ManifestStore):
    def __init__(self, root_path: str) -> None:
        self.root_path = os.path.abspath(root_path)

    def manifest_path(self, workspace: str) -> str:
        if is_root_workspace(workspace):
            return os.path.join(self.root_path, MANIFEST_FILENAME)
        return os.path.join(self.root_path, workspace, MANIFEST_FILENAME)

    def read(self, workspace: str) -> dict[str, Any]:
        path = self.manifest_path(workspace)
        try:
            with open(path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            raise FileSystemError(f"Invalid JSON in {path}: {exc}", path=path) from exc
        except OSError as exc:
            raise FileSystemError(f"Failed to read {path}: {exc}", path=path) from exc

        if not isinstance(payload, dict):
            raise FileSystemError(f"Manifest must be a JSON object: {path}", path=path)
        return payload

    def write(self, workspace: str, manifest: Mapping[str, Any]) -> None:
        path = self.manifest_path(workspace)
        content = json.dumps(dict(manifest), indent=2, ensure_ascii=False) + "\n"
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError as exc:
            raise FileSystemError(f"Failed to write {path}: {exc}", path=path) from exc
        logger.debug("Wrote manifest %s", path)


class InMemoryManifestStore(ManifestStore):
    def __init__(self, manifests: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._manifests: dict[str, dict[str, Any]] = {}
        for workspace, manifest in (manifests or {}).items():
            self._manifests[self._key(workspace)] = copy.deepcopy(dict(manifest))
        self.writes: list[str] = []
        self.fail_on: set[str] = set()

    @staticmethod
    def _key(workspace: str) -> str:
        return ROOT_WORKSPACE if is_root_workspace(workspace) else workspace

    def manifest_path(self, workspace: str) -> str:
        key = self._key(workspace)
        if key == ROOT_WORKSPACE:
            return f"<memory>/{MANIFEST_FILENAME}"
        return f"<memory>/{key}/{MANIFEST_FILENAME}"

    def read(self, workspace: str) -> dict[str, Any]:
        return copy.deepcopy(self._manifests.get(self._key(workspace), {}))

    def write(self, workspace: str, manifest: Mapping[str, Any]) -> None:
        key = self._key(workspace)
        if key in self.fail_on:
            raise FileSystemError(f"Failed to write {self.manifest_path(key)}", path=self.manifest_path(key))
        self._manifests[key] = copy.deepcopy(dict(manifest))
        self.writes.append(key)


__all__ = [
    "InMemoryManifestStore",
    "JsonManifestStore",
    "MANIFEST_FILENAME",
    "ManifestStore",
    "is_root_workspace",
]
