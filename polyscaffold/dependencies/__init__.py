"""Catalog-aware dependency management for pnpm workspaces."""

from polyscaffold.dependencies.analyzer import DependencyAnalyzer
from polyscaffold.dependencies.catalog_store import CatalogStore, InMemoryCatalogStore, YamlCatalogStore
from polyscaffold.dependencies.manifest_store import (
    InMemoryManifestStore,
    JsonManifestStore,
    ManifestStore,
)
from polyscaffold.dependencies.resolver import DependencyResolver
from polyscaffold.dependencies.settings import DependencySettings, SettingsStore
from polyscaffold.dependencies.types import (
    CATALOG_SENTINEL,
    BatchResult,
    CatalogEntry,
    DependencyResolution,
    OptimizationReport,
    OptimizationSuggestion,
    WorkspaceDependency,
)
from polyscaffold.dependencies.versions import best_version, format_version

__all__ = [
    "BatchResult",
    "CATALOG_SENTINEL",
    "CatalogEntry",
    "CatalogStore",
    "DependencyAnalyzer",
    "DependencyResolution",
    "DependencyResolver",
    "DependencySettings",
    "InMemoryCatalogStore",
    "InMemoryManifestStore",
    "JsonManifestStore",
    "ManifestStore",
    "OptimizationReport",
    "OptimizationSuggestion",
    "SettingsStore",
    "WorkspaceDependency",
    "YamlCatalogStore",
    "best_version",
    "format_version",
]
