"""File edits applied to generated project files.

Edit functions take `(path, feature_config)` and rewrite the file in place.
The builders here return such functions for the edits the built-in features need.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

import yaml

from featurekit.feature_types import EditFn
from polyscaffold.errors import FileSystemError
from polyscaffold.foundation.config_io import dump_yaml

logger = logging.getLogger(__name__)


class FileEditor:
    """Applies edit callables; I/O and parse failures surface as FileSystemError."""

    def apply_edit(self, path: str, edit_fn: EditFn, config: Mapping[str, Any]) -> None:
        try:
            edit_fn(path, config)
        except FileSystemError:
            raise
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise FileSystemError(f"Failed to edit {path}: {exc}", path=path) from exc
        logger.debug("Applied %s to %s", getattr(edit_fn, "__name__", repr(edit_fn)), path)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def _write_text(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(content)


def read_json_object(path: str) -> dict[str, Any]:
    src = _read_text(path)
    payload = json.loads(src) if src.strip() else {}
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return payload


def write_json_object(path: str, payload: Mapping[str, Any]) -> None:
    _write_text(path, json.dumps(dict(payload), indent=2, ensure_ascii=False) + "\n")


def package_json_edit(
    *,
    fields: Mapping[str, Any] | None = None,
    scripts: Mapping[str, str] | None = None,
) -> EditFn:
    """Set top-level `fields` and merge `scripts` into a package.json."""

    def edit_package_json(path: str, config: Mapping[str, Any]) -> None:
        pkg = read_json_object(path)
        for key, value in (fields or {}).items():
            pkg[key] = value
        if scripts:
            merged = dict(pkg.get("scripts") or {})
            merged.update(scripts)
            pkg["scripts"] = merged
        write_json_object(path, pkg)

    return edit_package_json


def workspace_package_edit(package: str) -> EditFn:
    """Add `package` to the `packages` list of pnpm-workspace.yaml (no-op if present)."""

    def add_workspace_package(path: str, config: Mapping[str, Any]) -> None:
        src = _read_text(path)
        data = yaml.safe_load(src) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Workspace descriptor must be a mapping: {path}")
        packages = list(data.get("packages") or [])
        if package in packages:
            logger.debug("%r already listed in %s", package, path)
            return
        packages.append(package)
        data["packages"] = packages
        _write_text(path, dump_yaml(data))

    return add_workspace_package


def prepend_line_edit(line: str) -> EditFn:
    """Put `line` at the top of a text file unless it is already present."""

    def prepend_line(path: str, config: Mapping[str, Any]) -> None:
        src = _read_text(path)
        if any(existing.strip() == line.strip() for existing in src.splitlines()):
            return
        _write_text(path, f"{line}\n{src}")

    return prepend_line


_PLUGINS_RE = re.compile(r"plugins\s*:\s*\[(?P<body>[^\]]*)\]", re.DOTALL)
_DEFINE_CONFIG_RE = re.compile(r"defineConfig\(\s*\{")


def vite_plugin_edit(import_name: str, module: str) -> EditFn:
    """Import `module` as `import_name` and call it inside `defineConfig({ plugins: [...] })`."""

    def add_vite_plugin(path: str, config: Mapping[str, Any]) -> None:
        src = _read_text(path)
        import_line = f"import {import_name} from '{module}'"
        if module not in src:
            src = f"{import_line}\n{src}"

        match = _PLUGINS_RE.search(src)
        if match:
            body = match.group("body")
            if f"{import_name}(" in body:
                _write_text(path, src)
                return
            stripped = body.rstrip()
            sep = ", " if stripped.strip() and not stripped.endswith(",") else ""
            new_body = f"{stripped}{sep}{import_name}()"
            src = src[: match.start("body")] + new_body + src[match.end("body") :]
        else:
            config_match = _DEFINE_CONFIG_RE.search(src)
            if config_match is None:
                raise ValueError(f"No defineConfig({{...}}) call found in {path}")
            insert_at = config_match.end()
            src = src[:insert_at] + f"\n  plugins: [{import_name}()]," + src[insert_at:]
        _write_text(path, src)

    return add_vite_plugin


__all__ = [
    "FileEditor",
    "package_json_edit",
    "prepend_line_edit",
    "read_json_object",
    "vite_plugin_edit",
    "workspace_package_edit",
    "write_json_object",
]
