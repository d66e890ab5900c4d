"""Feature dependency ordering.

Depth-first traversal with three-colour marking: a node seen again while still
in progress closes a cycle. Selected ids and `depends_on` entries are visited in
declaration order, so the output is deterministic for a given registry and
selection.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from featurekit.activation import evaluate
from featurekit.errors import CircularDependencyError
from featurekit.feature_registry import FeatureRegistry

logger = logging.getLogger(__name__)

_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


def _normalize_ids(selected_ids: Iterable[str]) -> list[str]:
    if isinstance(selected_ids, str):
        raise TypeError("selected_ids must be an iterable of feature ids, not a string")
    out: list[str] = []
    for idx, raw in enumerate(selected_ids):
        if not isinstance(raw, str) or not raw.strip():
            raise TypeError(f"selected_ids[{idx}] must be a non-empty string (got {raw!r})")
        out.append(raw.strip())
    return out


def order_features(registry: FeatureRegistry, selected_ids: Iterable[str]) -> tuple[str, ...]:
    """Return the selected features and their transitive dependencies, dependencies first."""

    state: dict[str, int] = {}
    ordered: list[str] = []
    path: list[str] = []

    def visit(feature_id: str, referenced_by: str | None) -> None:
        status = state.get(feature_id, _UNVISITED)
        if status == _DONE:
            return
        if status == _IN_PROGRESS:
            start = path.index(feature_id)
            raise CircularDependencyError(feature_id, cycle=[*path[start:], feature_id])

        feature = registry.get(feature_id, referenced_by=referenced_by)
        state[feature_id] = _IN_PROGRESS
        path.append(feature_id)
        for dep_id in feature.depends_on:
            visit(dep_id, feature_id)
        path.pop()
        state[feature_id] = _DONE
        ordered.append(feature_id)

    for feature_id in _normalize_ids(selected_ids):
        visit(feature_id, None)

    logger.debug("Feature order: %s", ", ".join(ordered) or "<none>")
    return tuple(ordered)


def dependency_closure(registry: FeatureRegistry, selected_ids: Iterable[str]) -> frozenset[str]:
    return frozenset(order_features(registry, selected_ids))


def select_features(
    registry: FeatureRegistry,
    answers: Mapping[str, Any],
    *,
    always: Iterable[str] = (),
) -> tuple[str, ...]:
    """
    Pick features from answers: every feature whose `activated_by` holds, plus
    the `always` ids, closed over dependencies and returned in execution order.
    """

    selected = _normalize_ids(always)
    for feature in registry.features():
        if feature.id in selected or feature.activated_by is None:
            continue
        if evaluate(feature.activated_by, answers, feature.id):
            selected.append(feature.id)
    return order_features(registry, selected)
