from __future__ import annotations

import logging
from collections.abc import Sequence

import pandas as pd

from polyscaffold.dependencies.catalog_store import CatalogStore
from polyscaffold.dependencies.manifest_store import ManifestStore
from polyscaffold.dependencies.settings import DependencySettings
from polyscaffold.dependencies.types import (
    CATALOG_SENTINEL,
    IMPACT_ORDER,
    ROOT_WORKSPACE,
    DependencyAnalysis,
    DependencyConflict,
    DependencyStats,
    Impact,
    OptimizationReport,
    OptimizationSuggestion,
    VersionUsage,
    WorkspaceDependency,
)
from polyscaffold.dependencies.versions import best_version

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["name", "version", "type", "workspace", "manifest_path", "uses_catalog"]


def impact_for_workspaces(count: int) -> Impact:
    if count > 2:
        return "high"
    if count == 2:
        return "medium"
    return "low"


def dependencies_to_frame(dependencies: Sequence[WorkspaceDependency]) -> pd.DataFrame:
    if not dependencies:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    rows = [
        {
            "name": dep.name,
            "version": dep.version,
            "type": dep.type,
            "workspace": dep.workspace,
            "manifest_path": dep.manifest_path,
            "uses_catalog": dep.uses_catalog,
        }
        for dep in dependencies
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def find_duplicates(frame: pd.DataFrame) -> tuple[DependencyConflict, ...]:
    """Names declared in more than one (workspace, version) slot, in first-seen order."""

    if frame.empty:
        return ()
    conflicts: list[DependencyConflict] = []
    for name, group in frame.groupby("name", sort=False):
        if len(group) < 2:
            continue
        usages = [
            VersionUsage(version=str(version), workspaces=tuple(str(ws) for ws in rows["workspace"]))
            for version, rows in group.groupby("version", sort=False)
        ]
        conflicts.append(DependencyConflict(name=str(name), versions=tuple(usages)))
    return tuple(conflicts)


class DependencyAnalyzer:
    """Read-only view over the catalog and every workspace manifest."""

    def __init__(self, catalog_store: CatalogStore, manifest_store: ManifestStore) -> None:
        self.catalog_store = catalog_store
        self.manifest_store = manifest_store

    def workspaces(self) -> list[str]:
        return [ROOT_WORKSPACE, *self.catalog_store.workspaces()]

    def collect(self) -> list[WorkspaceDependency]:
        found: list[WorkspaceDependency] = []
        for workspace in self.workspaces():
            found.extend(self.manifest_store.dependencies(workspace))
        return found

    def dependency_frame(self) -> pd.DataFrame:
        return dependencies_to_frame(self.collect())

    def analyze(self) -> DependencyAnalysis:
        entries = self.catalog_store.entries()
        dependencies = self.collect()
        frame = dependencies_to_frame(dependencies)

        duplicates = find_duplicates(frame)
        catalog_names = {entry.name for entry in entries}
        used_names = set(frame["name"]) if not frame.empty else set()

        analysis = DependencyAnalysis(
            catalog_entries=tuple(entries),
            workspace_dependencies=tuple(dependencies),
            duplicates=duplicates,
            missing_from_catalog=tuple(d.name for d in duplicates if d.name not in catalog_names),
            unused_catalog_entries=tuple(e.name for e in entries if e.name not in used_names),
        )
        logger.debug(
            "Analysis: %d dependencies, %d duplicates, %d missing from catalog, %d unused entries",
            len(dependencies),
            len(duplicates),
            len(analysis.missing_from_catalog),
            len(analysis.unused_catalog_entries),
        )
        return analysis

    def suggestions(
        self, settings: DependencySettings, analysis: DependencyAnalysis | None = None
    ) -> tuple[OptimizationSuggestion, ...]:
        """
        Ranked optimization suggestions.

        Ordered high > medium > low; within a tier suggestions keep the order
        they were produced in. At most one suggestion per (type, dependency).
        """

        analysis = analysis or self.analyze()
        produced: list[OptimizationSuggestion] = []

        for duplicate in analysis.duplicates:
            direct = [u for u in duplicate.versions if not u.version.startswith(CATALOG_SENTINEL)]
            if not direct:
                continue
            workspaces = duplicate.all_workspaces()
            produced.append(
                OptimizationSuggestion(
                    type="catalog",
                    dependency=duplicate.name,
                    description=f"Add '{duplicate.name}' to catalog to unify versions across workspaces",
                    impact=impact_for_workspaces(len(set(workspaces))),
                    workspaces=workspaces,
                    suggested_version=best_version(u.version for u in duplicate.versions),
                )
            )

        for name in analysis.unused_catalog_entries:
            produced.append(
                OptimizationSuggestion(
                    type="duplicate-removal",
                    dependency=name,
                    description=f"Remove unused catalog entry '{name}'",
                    impact="low",
                )
            )

        for duplicate in analysis.duplicates:
            direct = [u for u in duplicate.versions if not u.version.startswith(CATALOG_SENTINEL)]
            if len(direct) > 1:
                produced.append(
                    OptimizationSuggestion(
                        type="version-conflict",
                        dependency=duplicate.name,
                        description=(
                            f"Resolve version conflict for '{duplicate.name}' "
                            f"({', '.join(u.version for u in direct)})"
                        ),
                        impact="high",
                        workspaces=duplicate.all_workspaces(),
                        suggested_version=best_version(u.version for u in direct),
                    )
                )

        frame = dependencies_to_frame(analysis.workspace_dependencies)
        if not frame.empty:
            common = frame[~frame["uses_catalog"] & frame["name"].isin(settings.common_dependencies)]
            for name, group in common.groupby("name", sort=False):
                if len(group) < settings.catalog_threshold:
                    continue
                produced.append(
                    OptimizationSuggestion(
                        type="catalog",
                        dependency=str(name),
                        description=f"Add common dependency '{name}' to catalog",
                        impact="medium",
                        workspaces=tuple(str(ws) for ws in group["workspace"]),
                        suggested_version=best_version(str(v) for v in group["version"]),
                    )
                )

        seen: set[tuple[str, str]] = set()
        unique: list[OptimizationSuggestion] = []
        for suggestion in produced:
            key = (suggestion.type, suggestion.dependency)
            if key in seen:
                continue
            seen.add(key)
            unique.append(suggestion)

        # sorted() is stable, so ties keep production order
        return tuple(sorted(unique, key=lambda s: -IMPACT_ORDER[s.impact]))

    def report(self, settings: DependencySettings) -> OptimizationReport:
        analysis = self.analyze()
        suggestions = self.suggestions(settings, analysis)
        return OptimizationReport(
            duplicates=analysis.duplicates,
            suggestions=suggestions,
            potential_catalog_entries=analysis.missing_from_catalog,
            conflicts_resolved=sum(1 for s in suggestions if s.type == "version-conflict"),
            duplicates_removed=sum(1 for s in suggestions if s.type == "duplicate-removal"),
        )

    def usage_count(self, name: str, workspaces: Sequence[str] | None = None) -> int:
        names = self.workspaces() if workspaces is None else list(workspaces)
        return sum(1 for ws in names if self.manifest_store.has_dependency(ws, name))

    def should_be_catalogued(self, name: str, settings: DependencySettings) -> tuple[bool, str]:
        if settings.is_common(name):
            return True, "Listed as common dependency in configuration"

        usage = self.usage_count(name)
        if usage >= settings.catalog_threshold:
            return True, f"Used in {usage} workspaces (threshold: {settings.catalog_threshold})"
        return (
            False,
            f"Only used in {usage} workspace(s), below threshold of {settings.catalog_threshold}",
        )

    def stats(self) -> DependencyStats:
        analysis = self.analyze()
        workspace_count = len(self.workspaces())
        total = len(analysis.workspace_dependencies)
        return DependencyStats(
            total_dependencies=total,
            catalog_dependencies=len(analysis.catalog_entries),
            duplicated_dependencies=len(analysis.duplicates),
            workspace_count=workspace_count,
            average_dependencies_per_workspace=total / workspace_count if workspace_count else 0.0,
        )


__all__ = [
    "DependencyAnalyzer",
    "FRAME_COLUMNS",
    "dependencies_to_frame",
    "find_duplicates",
    "impact_for_workspaces",
]
