from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

SETTINGS_FILENAMES = (".polyrc.yaml", ".polyrc.yml", ".polyrc.json")
LOCAL_SETTINGS_FILENAME = ".polyrc.local.yaml"
ROOT_MARKERS = ("pnpm-workspace.yaml", ".polyrc.yaml", ".polyrc.json", ".git")


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str:
    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    for candidate in (start_path, *start_path.parents):
        for marker in ROOT_MARKERS:
            if (candidate / marker).exists():
                return str(candidate)

    raise FileNotFoundError(
        "Cannot locate workspace root: searched from "
        f"{start_path} for {', '.join(ROOT_MARKERS)}"
    )


def load_yaml_mapping(path: str) -> dict[str, Any]:
    """Parse a YAML (or JSON) document that must hold a mapping; empty files are `{}`."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def dump_yaml(payload: Mapping[str, Any]) -> str:
    return yaml.safe_dump(
        dict(payload),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=10_000,
    )


def deep_merge(base: Any, overlay: Any, *, path: str) -> Any:
    if overlay is None:
        return None

    if base is None:
        return overlay

    if isinstance(base, Mapping):
        if not isinstance(overlay, Mapping):
            raise ValueError(
                f"Invalid config overlay merge at {path}: base is mapping but overlay is {type(overlay).__name__}"
            )
        merged: dict[str, Any] = dict(base)
        for key, overlay_value in overlay.items():
            next_path = f"{path}.{key}" if path else str(key)
            if key in base:
                merged[key] = deep_merge(base[key], overlay_value, path=next_path)
            else:
                merged[key] = overlay_value
        return merged

    if isinstance(base, (list, tuple)):
        if not isinstance(overlay, (list, tuple)):
            raise ValueError(
                f"Invalid config overlay merge at {path}: base is list but overlay is {type(overlay).__name__}"
            )
        return list(overlay)

    if isinstance(overlay, (Mapping, list, tuple)):
        raise ValueError(
            f"Invalid config overlay merge at {path}: base is {type(base).__name__} but overlay is {type(overlay).__name__}"
        )

    return overlay


def settings_path(root_path: str) -> str | None:
    for filename in SETTINGS_FILENAMES:
        candidate = os.path.join(root_path, filename)
        if os.path.exists(candidate):
            return candidate
    return None


def load_settings_document(root_path: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Load the project settings document from `root_path`.

    The first of `.polyrc.yaml`, `.polyrc.yml`, `.polyrc.json` found is the base
    (YAML parses JSON too); `.polyrc.local.yaml` is deep-merged on top. A
    missing base yields `{}`.
    """

    base_path = settings_path(root_path)
    local_path = os.path.join(root_path, LOCAL_SETTINGS_FILENAME)

    doc: dict[str, Any] = {}
    loaded_paths: list[str] = []
    mode = "defaults"

    if base_path is not None:
        doc = load_yaml_mapping(base_path)
        loaded_paths.append(os.path.abspath(base_path))
        mode = "base"

    if os.path.exists(local_path):
        overlay = load_yaml_mapping(local_path)
        doc = deep_merge(doc, overlay, path="")
        loaded_paths.append(os.path.abspath(local_path))
        mode = "base+local" if base_path is not None else "local"

    meta = {"mode": mode, "paths": loaded_paths, "root": os.path.abspath(root_path)}
    return doc, meta
