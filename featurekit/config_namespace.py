"""Strict configuration namespace.

Every typed getter marks its key as read; `assert_consumed` then fails on any
key no getter asked for, which turns typos in settings files into errors
instead of silently ignored options.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

_MISSING = object()


@dataclass
class ConfigNamespace:
    data: Mapping[str, Any]
    path: str = ""
    _read: set[str] = field(default_factory=set, init=False, repr=False)

    def _take(self, key: str, default: Any) -> tuple[str, Any]:
        if not isinstance(key, str) or not key.strip():
            raise TypeError("ConfigNamespace key must be a non-empty string")
        name = key.strip()
        where = f"{self.path}.{name}" if self.path else name
        self._read.add(name)
        if name in self.data:
            return where, self.data[name]
        if default is _MISSING:
            raise ValueError(f"Missing required config key: {where}")
        return where, default

    def unconsumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(str(key) for key in self.data if key not in self._read))

    def assert_consumed(self) -> None:
        leftover = self.unconsumed_keys()
        if leftover:
            raise ValueError(
                f"Unknown config keys under {self.path or '<root>'}: {', '.join(leftover)}"
            )

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        where, value = self._take(key, default)
        if not isinstance(value, bool):
            raise TypeError(f"{where} must be a boolean (type={type(value).__name__})")
        return value

    def get_int(self, key: str, *, default: int | object = _MISSING, min_value: int | None = None) -> int:
        where, value = self._take(key, default)
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{where} must be an int (type={type(value).__name__})")
        if min_value is not None and value < min_value:
            raise ValueError(f"{where} must be >= {min_value} (got {value})")
        return value

    def get_str(
        self,
        key: str,
        *,
        default: str | object = _MISSING,
        choices: Iterable[str] | None = None,
    ) -> str:
        where, raw = self._take(key, default)
        if not isinstance(raw, str):
            raise TypeError(f"{where} must be a string (type={type(raw).__name__})")
        value = raw.strip()
        if not value:
            raise ValueError(f"{where} cannot be empty")
        if choices is not None:
            allowed = tuple(choices)
            if value not in allowed:
                raise ValueError(f"{where} must be one of: {', '.join(allowed)} (got {value!r})")
        return value

    def get_list_str(self, key: str, *, default: list[str] | tuple[str, ...] | object = _MISSING) -> list[str]:
        where, raw = self._take(key, default)
        return _string_list(raw, where)

    def get_mapping_list_str(
        self, key: str, *, default: Mapping[str, list[str]] | object = _MISSING
    ) -> dict[str, list[str]]:
        """A mapping of names to string lists, e.g. `workspaceSpecific`."""

        where, raw = self._take(key, default)
        if not isinstance(raw, Mapping):
            raise TypeError(f"{where} must be a mapping (type={type(raw).__name__})")
        out: dict[str, list[str]] = {}
        for sub_key, items in raw.items():
            if not isinstance(sub_key, str) or not sub_key.strip():
                raise TypeError(f"{where} keys must be non-empty strings (got {sub_key!r})")
            out[sub_key.strip()] = _string_list(items, f"{where}.{sub_key}")
        return out


def _string_list(raw: Any, where: str) -> list[str]:
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        raise TypeError(f"{where} must be a list[str] (type={type(raw).__name__})")
    items: list[str] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, str):
            raise TypeError(f"{where}[{idx}] must be a string (type={type(item).__name__})")
        if not item.strip():
            raise ValueError(f"{where}[{idx}] cannot be empty")
        items.append(item.strip())
    return items
