from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from featurekit.feature_types import DependencyRequest, DependencyType

CATALOG_SENTINEL = "catalog:"
REGISTRY_PLACEHOLDER = "latest"
ROOT_WORKSPACE = "root"

ResolutionAction = Literal["use-catalog", "add-to-catalog", "add-direct", "conflict"]
SuggestionType = Literal["catalog", "version-conflict", "duplicate-removal"]
Impact = Literal["high", "medium", "low"]
VersionStrategy = Literal["latest", "exact", "caret", "tilde"]

IMPACT_ORDER: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    version: str


@dataclass(frozen=True)
class WorkspaceDependency:
    name: str
    version: str
    type: DependencyType
    workspace: str
    manifest_path: str | None = None

    @property
    def uses_catalog(self) -> bool:
        return self.version.startswith(CATALOG_SENTINEL)


@dataclass(frozen=True)
class DependencyResolution:
    action: ResolutionAction
    reason: str
    request: DependencyRequest
    version: str | None = None
    catalog_entry: CatalogEntry | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class BatchResult:
    resolutions: tuple[DependencyResolution, ...]
    catalog_entries: tuple[CatalogEntry, ...] = ()
    written: dict[str, tuple[str, ...]] = field(default_factory=dict)
    skipped: tuple[DependencyResolution, ...] = ()


@dataclass(frozen=True)
class VersionUsage:
    version: str
    workspaces: tuple[str, ...]


@dataclass(frozen=True)
class DependencyConflict:
    name: str
    versions: tuple[VersionUsage, ...]

    def all_workspaces(self) -> tuple[str, ...]:
        return tuple(ws for usage in self.versions for ws in usage.workspaces)


@dataclass(frozen=True)
class OptimizationSuggestion:
    type: SuggestionType
    dependency: str
    description: str
    impact: Impact
    workspaces: tuple[str, ...] = ()
    suggested_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "dependency": self.dependency,
            "description": self.description,
            "impact": self.impact,
            "workspaces": list(self.workspaces),
            "suggested_version": self.suggested_version,
        }


@dataclass(frozen=True)
class DependencyAnalysis:
    catalog_entries: tuple[CatalogEntry, ...]
    workspace_dependencies: tuple[WorkspaceDependency, ...]
    duplicates: tuple[DependencyConflict, ...]
    missing_from_catalog: tuple[str, ...]
    unused_catalog_entries: tuple[str, ...]


@dataclass(frozen=True)
class OptimizationReport:
    duplicates: tuple[DependencyConflict, ...]
    suggestions: tuple[OptimizationSuggestion, ...]
    potential_catalog_entries: tuple[str, ...]
    conflicts_resolved: int
    duplicates_removed: int
    applied: tuple[OptimizationSuggestion, ...] = ()


@dataclass(frozen=True)
class DependencyStats:
    total_dependencies: int
    catalog_dependencies: int
    duplicated_dependencies: int
    workspace_count: int
    average_dependencies_per_workspace: float
