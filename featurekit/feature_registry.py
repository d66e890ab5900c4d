from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Any, Iterable

from featurekit.errors import UnknownFeatureError
from featurekit.feature_types import Feature


@dataclass(frozen=True)
class FeatureRegistry:
    _by_id: dict[str, Feature]

    @classmethod
    def from_features(cls, features: Iterable[Feature]) -> "FeatureRegistry":
        entries: dict[str, Feature] = {}
        for feature in features:
            if not isinstance(feature, Feature):
                raise TypeError(f"FeatureRegistry entries must be Feature (type={type(feature).__name__})")
            if feature.id in entries:
                raise ValueError(f"Duplicate feature id: {feature.id}")
            entries[feature.id] = feature
        return cls(_by_id=entries)

    def __contains__(self, feature_id: object) -> bool:
        return isinstance(feature_id, str) and feature_id.strip() in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def available(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_id.keys()))

    def features(self) -> tuple[Feature, ...]:
        """Features in declaration order."""
        return tuple(self._by_id.values())

    def describe(self) -> tuple[dict[str, Any], ...]:
        rows: list[dict[str, Any]] = []
        for feature in sorted(self._by_id.values(), key=lambda f: f.id):
            rows.append(
                {
                    "feature_id": feature.id,
                    "name": feature.name,
                    "description": feature.description,
                    "depends_on": list(feature.depends_on),
                    "activated_by": feature.activated_by.to_dict() if feature.activated_by else None,
                    "stages": [
                        {
                            "name": stage.name,
                            "activated_by": stage.activated_by.to_dict() if stage.activated_by else None,
                            "dependencies": len(stage.dependencies),
                            "scripts": len(stage.scripts),
                            "templates": len(stage.templates),
                            "edits": len(stage.edits),
                        }
                        for stage in feature.stages
                    ],
                }
            )
        return tuple(rows)

    def get(self, feature_id: str, *, referenced_by: str | None = None) -> Feature:
        key = (feature_id or "").strip() if isinstance(feature_id, str) else ""
        feature = self._by_id.get(key)
        if feature is None:
            raise UnknownFeatureError(
                str(feature_id),
                referenced_by=referenced_by,
                suggestions=self.suggest(key),
            )
        return feature

    def suggest(self, feature_id: str, *, limit: int = 3) -> tuple[str, ...]:
        key = (feature_id or "").strip()
        if not key or not self._by_id:
            return ()
        return tuple(difflib.get_close_matches(key, list(self.available()), n=limit))

    def validate(self) -> None:
        """Fail fast on undeclared dependencies or cycles anywhere in the registry."""

        from featurekit.graph import order_features

        order_features(self, [f.id for f in self._by_id.values()])
