"""Version string formatting and selection.

Only plain string handling: no range solving, no registry lookups.
"""

from __future__ import annotations

import re
from typing import Iterable

from polyscaffold.dependencies.types import CATALOG_SENTINEL, REGISTRY_PLACEHOLDER

VERSION_STRATEGIES: tuple[str, ...] = ("latest", "exact", "caret", "tilde")

_NUMERIC_RE = re.compile(r"^v?\d+(\.\d+)*([-+][0-9A-Za-z.\-+]*)?$")
_CATALOG_VERSION_RE = re.compile(r"^[\^~]?\d+\.\d+\.\d+.*$|^latest$|^next$")
_TAG_RE = re.compile(r"^[A-Za-z][A-Za-z0-9._-]*$")


def is_numeric_version(version: str) -> bool:
    return bool(_NUMERIC_RE.match(version.strip()))


def is_tag(version: str) -> bool:
    """Dist-tag such as `latest`, `next` or `canary` (not a numeric version or range)."""
    return bool(_TAG_RE.match(version)) and not is_numeric_version(version)


def is_valid_catalog_version(version: str) -> bool:
    return bool(_CATALOG_VERSION_RE.match(version))


def format_version(version: str, strategy: str) -> str:
    """
    Apply `strategy` to a plain numeric version.

    Tags (`latest`, `next`, ...) and anything else that is not a bare numeric version
    (`^1.2.0`, `>=2`, `workspace:*`) pass through unchanged.
    """

    if strategy not in VERSION_STRATEGIES:
        raise ValueError(
            f"Unknown version strategy: {strategy!r} (expected one of: {', '.join(VERSION_STRATEGIES)})"
        )
    raw = version.strip()
    if not is_numeric_version(raw):
        return raw
    if raw.startswith("v"):
        raw = raw[1:]

    if strategy == "caret":
        return f"^{raw}"
    if strategy == "tilde":
        return f"~{raw}"
    if strategy == "exact":
        return raw
    return f"^{raw}" if "." in raw else raw


def best_version(versions: Iterable[str]) -> str:
    """
    Pick one version to unify on.

    Sentinels are ignored. A non-numeric tag wins (`latest`, then `next`,
    then the first other tag), else the first caret range, else the first
    tilde range, else the first literal, in the order given.
    """

    actual = [v for v in versions if not v.startswith(CATALOG_SENTINEL)]
    if not actual:
        return REGISTRY_PLACEHOLDER
    if len(actual) == 1:
        return actual[0]

    if "latest" in actual:
        return "latest"
    if "next" in actual:
        return "next"
    for version in actual:
        if is_tag(version):
            return version

    for prefix in ("^", "~"):
        for version in actual:
            if version.startswith(prefix):
                return version

    return actual[0]
