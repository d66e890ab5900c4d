"""Shared version catalog kept in the workspace descriptor (`pnpm-workspace.yaml`)."""

from __future__ import annotations

import copy
import logging
import os
from collections.abc import Iterable, Mapping
from typing import Any

import yaml

from polyscaffold.dependencies.types import CatalogEntry
from polyscaffold.dependencies.versions import is_valid_catalog_version
from polyscaffold.errors import FileSystemError
from polyscaffold.foundation.config_io import dump_yaml

logger = logging.getLogger(__name__)

WORKSPACE_FILENAME = "pnpm-workspace.yaml"
DEFAULT_PACKAGES: tuple[str, ...] = ("web", "api")


def default_descriptor() -> dict[str, Any]:
    return {"packages": list(DEFAULT_PACKAGES), "catalog": {}}


def _normalize_descriptor(raw: Mapping[str, Any], *, path: str) -> dict[str, Any]:
    doc = dict(raw)
    packages = doc.get("packages") or []
    catalog = doc.get("catalog") or {}
    if not isinstance(packages, list):
        raise FileSystemError(f"'packages' must be a list in {path}", path=path)
    if not isinstance(catalog, Mapping):
        raise FileSystemError(f"'catalog' must be a mapping in {path}", path=path)
    doc["packages"] = [str(p) for p in packages]
    doc["catalog"] = {str(k): str(v) for k, v in catalog.items()}
    return doc


class CatalogStore:
    """
    Catalog operations over a descriptor document.

    Subclasses provide `read()` (a fresh, normalized copy) and `write(doc)`.
    Every mutating call is one read-modify-write.
    """

    def read(self) -> dict[str, Any]:
        raise NotImplementedError

    def write(self, doc: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def entries(self) -> list[CatalogEntry]:
        return [CatalogEntry(name, version) for name, version in self.read()["catalog"].items()]

    def has_entry(self, name: str) -> bool:
        return name in self.read()["catalog"]

    def get_entry(self, name: str) -> CatalogEntry | None:
        version = self.read()["catalog"].get(name)
        if not version:
            return None
        return CatalogEntry(name, version)

    def add_entry(self, name: str, version: str) -> None:
        self.add_entries([CatalogEntry(name, version)])

    def add_entries(self, entries: Iterable[CatalogEntry]) -> None:
        doc = self.read()
        for entry in entries:
            doc["catalog"][entry.name] = entry.version
        self.write(doc)

    def remove_entry(self, name: str) -> bool:
        doc = self.read()
        if name not in doc["catalog"]:
            return False
        del doc["catalog"][name]
        self.write(doc)
        return True

    def update_entry(self, name: str, version: str) -> None:
        doc = self.read()
        if name not in doc["catalog"]:
            raise KeyError(f"Catalog entry {name!r} not found")
        doc["catalog"][name] = version
        self.write(doc)

    def workspaces(self) -> list[str]:
        return list(self.read()["packages"])

    def add_workspace(self, workspace: str) -> bool:
        doc = self.read()
        if workspace in doc["packages"]:
            return False
        doc["packages"].append(workspace)
        self.write(doc)
        return True

    def sort_catalog(self) -> None:
        doc = self.read()
        doc["catalog"] = dict(sorted(doc["catalog"].items()))
        self.write(doc)

    @staticmethod
    def validate_entries(entries: Iterable[CatalogEntry]) -> list[str]:
        """Return a list of problems; an empty list means every entry is usable."""

        errors: list[str] = []
        for entry in entries:
            if not isinstance(entry.name, str) or not entry.name:
                errors.append(f"Invalid package name: {entry.name!r}")
            if not isinstance(entry.version, str) or not entry.version:
                errors.append(f"Invalid version for {entry.name}: {entry.version!r}")
                continue
            if not is_valid_catalog_version(entry.version):
                errors.append(f"Invalid version format for {entry.name}: {entry.version}")
        return errors


class YamlCatalogStore(CatalogStore):
    def __init__(self, root_path: str) -> None:
        self.root_path = os.path.abspath(root_path)
        self.path = os.path.join(self.root_path, WORKSPACE_FILENAME)

    def read(self) -> dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except FileNotFoundError:
            return default_descriptor()
        except yaml.YAMLError as exc:
            raise FileSystemError(f"Invalid YAML in {self.path}: {exc}", path=self.path) from exc
        except OSError as exc:
            raise FileSystemError(f"Failed to read {self.path}: {exc}", path=self.path) from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise FileSystemError(f"Workspace descriptor must be a mapping: {self.path}", path=self.path)
        return _normalize_descriptor(payload, path=self.path)

    def write(self, doc: Mapping[str, Any]) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as handle:
                handle.write(dump_yaml(doc))
        except OSError as exc:
            raise FileSystemError(f"Failed to write {self.path}: {exc}", path=self.path) from exc
        logger.debug("Wrote workspace descriptor %s", self.path)


class InMemoryCatalogStore(CatalogStore):
    def __init__(self, doc: Mapping[str, Any] | None = None) -> None:
        self.path = f"<memory>/{WORKSPACE_FILENAME}"
        self._doc = _normalize_descriptor(doc, path=self.path) if doc is not None else default_descriptor()
        self.writes = 0

    def read(self) -> dict[str, Any]:
        return copy.deepcopy(self._doc)

    def write(self, doc: Mapping[str, Any]) -> None:
        self._doc = _normalize_descriptor(copy.deepcopy(dict(doc)), path=self.path)
        self.writes += 1


__all__ = [
    "CatalogStore",
    "DEFAULT_PACKAGES",
    "InMemoryCatalogStore",
    "WORKSPACE_FILENAME",
    "YamlCatalogStore",
    "default_descriptor",
]
