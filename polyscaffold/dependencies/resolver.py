"""Decides how each requested dependency lands: shared catalog pin or direct manifest entry."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from featurekit.feature_types import DependencyRequest, DependencyType
from polyscaffold.dependencies.analyzer import DependencyAnalyzer
from polyscaffold.dependencies.catalog_store import CatalogStore, YamlCatalogStore
from polyscaffold.dependencies.manifest_store import JsonManifestStore, ManifestStore, is_root_workspace
from polyscaffold.dependencies.settings import DependencySettings
from polyscaffold.dependencies.types import (
    CATALOG_SENTINEL,
    REGISTRY_PLACEHOLDER,
    ROOT_WORKSPACE,
    BatchResult,
    CatalogEntry,
    DependencyResolution,
    OptimizationReport,
    OptimizationSuggestion,
)
from polyscaffold.dependencies.versions import best_version, format_version
from polyscaffold.errors import DependencyConflictError, FileSystemError


def _same_workspace(a: str, b: str) -> bool:
    if is_root_workspace(a) and is_root_workspace(b):
        return True
    return a == b


class DependencyResolver:
    def __init__(
        self,
        catalog_store: CatalogStore,
        manifest_store: ManifestStore,
        settings: DependencySettings | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.catalog_store = catalog_store
        self.manifest_store = manifest_store
        self.settings = settings or DependencySettings()
        self.analyzer = DependencyAnalyzer(catalog_store, manifest_store)
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def for_project(
        cls,
        root_path: str,
        settings: DependencySettings | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> "DependencyResolver":
        return cls(
            YamlCatalogStore(root_path),
            JsonManifestStore(root_path),
            settings,
            logger=logger,
        )

    def format_version(self, version: str) -> str:
        return format_version(version, self.settings.version_strategy)

    def all_workspaces(self, extra: Sequence[str] = ()) -> list[str]:
        """Root first, then descriptor members, then any `extra` workspaces not yet listed."""

        ordered = [ROOT_WORKSPACE, *self.catalog_store.workspaces()]
        for workspace in extra:
            if not any(_same_workspace(workspace, known) for known in ordered):
                ordered.append(workspace)
        return ordered

    def should_be_catalogued(self, name: str) -> bool:
        shared, _reason = self.analyzer.should_be_catalogued(name, self.settings)
        return shared

    def resolve(self, request: DependencyRequest) -> DependencyResolution:
        if len(request.names) != 1:
            raise ValueError(f"resolve() expects a single-name request; expand() first ({request.names})")
        name = request.names[0]
        settings = self.settings

        entry = self.catalog_store.get_entry(name)
        if entry is not None:
            return DependencyResolution(
                action="use-catalog",
                reason="Dependency exists in catalog",
                request=request,
                version=CATALOG_SENTINEL,
                catalog_entry=entry,
            )

        workspaces = self.all_workspaces((request.workspace,))
        direct: list[tuple[str, str]] = []
        usage = 0
        for workspace in workspaces:
            existing = self.manifest_store.get_dependency(workspace, name)
            if existing is None:
                continue
            usage += 1
            if not existing.uses_catalog:
                direct.append((workspace, existing.version))
        direct_elsewhere = [ws for ws, _v in direct if not _same_workspace(ws, request.workspace)]

        reason: str | None = None
        if settings.is_common(name):
            reason = "Common dependency, adding to catalog"
        elif settings.auto_catalog and direct_elsewhere:
            reason = f"Dependency found in {len(direct_elsewhere)} other workspace(s), adding to catalog"
        elif usage >= settings.catalog_threshold:
            reason = f"Used in {usage} workspaces (threshold: {settings.catalog_threshold})"

        if reason is not None:
            version = request.version or (direct[0][1] if direct else REGISTRY_PLACEHOLDER)
            return DependencyResolution(
                action="add-to-catalog",
                reason=reason,
                request=request,
                version=CATALOG_SENTINEL,
                catalog_entry=CatalogEntry(name, self.format_version(version)),
            )

        formatted = self.format_version(request.version or REGISTRY_PLACEHOLDER)
        current = next((v for ws, v in direct if _same_workspace(ws, request.workspace)), None)
        if current is not None and current != formatted:
            if not request.force:
                return DependencyResolution(
                    action="conflict",
                    reason=f"Version conflict: existing {current} vs requested {formatted}",
                    request=request,
                    version=formatted,
                    warnings=("Existing dependency will be overwritten",),
                )
            return DependencyResolution(
                action="add-direct",
                reason=f"Forced over existing {current}",
                request=request,
                version=formatted,
                warnings=(f"Overwrote {name}@{current} in {request.workspace}",),
            )

        return DependencyResolution(
            action="add-direct",
            reason="Adding directly to workspace",
            request=request,
            version=formatted,
        )

    def add(self, request: DependencyRequest) -> DependencyResolution:
        """Resolve and apply one request; a conflict raises DependencyConflictError."""

        name = request.names[0] if len(request.names) == 1 else None
        if name is None:
            raise ValueError(f"add() expects a single-name request; use add_all() ({request.names})")

        resolution = self.resolve(request)
        self.logger.debug("Resolved %s -> %s (%s)", name, resolution.action, resolution.reason)

        if resolution.action == "conflict":
            self.logger.warning("Conflict detected for %s: %s", name, resolution.reason)
            raise DependencyConflictError(name, request.workspace, resolution.reason)

        entry = resolution.catalog_entry if resolution.action == "add-to-catalog" else None
        if entry is not None:
            self.catalog_store.add_entry(entry.name, entry.version)

        self.manifest_store.add_dependency(request.workspace, name, resolution.version or "", request.type)
        for warning in resolution.warnings:
            self.logger.warning("%s: %s", name, warning)

        if entry is not None:
            self.logger.info("Added %s@%s to catalog and %s", name, entry.version, request.workspace)
            self.convert_existing_to_catalog(name, extra_workspaces=(request.workspace,))
        elif resolution.action == "use-catalog":
            self.logger.info("Added %s to %s using catalog reference", name, request.workspace)
        else:
            self.logger.info("Added %s@%s directly to %s", name, resolution.version, request.workspace)
        return resolution

    def add_all(self, requests: Sequence[DependencyRequest]) -> BatchResult:
        """
        Resolve every request first, then write.

        Catalog insertions land in one descriptor write and manifest
        insertions in one write per workspace; the sentinel rewrite runs last.
        Conflicts are skipped with a warning.
        """

        expanded: list[DependencyRequest] = []
        for request in requests:
            expanded.extend(request.expand())
        self.logger.info("Adding %d dependencies...", len(expanded))

        resolutions: list[DependencyResolution] = []
        queued: dict[tuple[str, DependencyType, str], str] = {}
        for request in expanded:
            resolution = self.resolve(request)
            if resolution.action != "conflict":
                resolution = self._check_queued(resolution, queued)
            resolutions.append(resolution)

        catalog_entries: dict[str, CatalogEntry] = {}
        for resolution in resolutions:
            entry = resolution.catalog_entry
            if resolution.action == "add-to-catalog" and entry is not None:
                # first request for a name decides its pin
                catalog_entries.setdefault(entry.name, entry)

        if catalog_entries:
            self.catalog_store.add_entries(catalog_entries.values())
            self.logger.info("Added %d entries to catalog", len(catalog_entries))

        # a forced request replaces the queued item in place
        grouped: dict[str, dict[tuple[str, DependencyType], tuple[str, str, DependencyType]]] = {}
        skipped: list[DependencyResolution] = []
        for resolution in resolutions:
            request = resolution.request
            name = request.names[0]
            if resolution.action == "conflict":
                self.logger.warning("Skipping %s due to conflict: %s", name, resolution.reason)
                skipped.append(resolution)
                continue
            for warning in resolution.warnings:
                self.logger.warning("%s: %s", name, warning)
            grouped.setdefault(request.workspace, {})[(name, request.type)] = (
                name,
                resolution.version or "",
                request.type,
            )

        written: dict[str, tuple[str, ...]] = {}
        for workspace, queued_items in grouped.items():
            items = list(queued_items.values())
            self.manifest_store.add_dependencies(workspace, items)
            written[workspace] = tuple(name for name, _version, _type in items)
            self.logger.info("Added %d dependencies to %s", len(items), workspace)

        failures: list[FileSystemError] = []
        for name in catalog_entries:
            try:
                self.convert_existing_to_catalog(name, extra_workspaces=tuple(grouped))
            except FileSystemError as exc:
                failures.append(exc)
        if failures:
            raise FileSystemError("; ".join(str(exc) for exc in failures))

        return BatchResult(
            resolutions=tuple(resolutions),
            catalog_entries=tuple(catalog_entries.values()),
            written=written,
            skipped=tuple(skipped),
        )

    def _check_queued(
        self,
        resolution: DependencyResolution,
        queued: dict[tuple[str, DependencyType, str], str],
    ) -> DependencyResolution:
        """Two requests in one batch for the same slot must agree unless the later one forces."""

        request = resolution.request
        name = request.names[0]
        workspace = ROOT_WORKSPACE if is_root_workspace(request.workspace) else request.workspace
        key = (workspace, request.type, name)
        version = resolution.version or ""
        earlier = queued.get(key)
        if earlier is None or earlier == version:
            queued[key] = version
            return resolution
        if not request.force:
            return DependencyResolution(
                action="conflict",
                reason=f"Version conflict within batch: queued {earlier} vs requested {version}",
                request=request,
                version=version,
            )
        queued[key] = version
        return replace(
            resolution,
            warnings=(*resolution.warnings, f"Replaced queued {name}@{earlier} in {request.workspace}"),
        )

    def convert_existing_to_catalog(self, name: str, *, extra_workspaces: Sequence[str] = ()) -> list[str]:
        """
        Rewrite every direct reference to `name` as the catalog sentinel.

        Each workspace is attempted even when an earlier one fails; the catalog
        write is not undone. Failures are raised together as one FileSystemError.
        """

        converted: list[str] = []
        failures: list[str] = []
        for workspace in self.all_workspaces(extra_workspaces):
            try:
                existing = self.manifest_store.get_dependency(workspace, name)
                if existing is None or existing.uses_catalog:
                    continue
                if self.manifest_store.convert_to_catalog_reference(workspace, name):
                    converted.append(workspace)
            except FileSystemError as exc:
                self.logger.warning("Failed to rewrite %s in %s to catalog reference: %s", name, workspace, exc)
                failures.append(f"{workspace}: {exc}")

        if converted:
            self.logger.info("Converted %s to catalog reference in: %s", name, ", ".join(converted))
        if failures:
            raise FileSystemError(
                f"Catalog entry for {name} written but {len(failures)} workspace(s) were not rewritten: "
                + "; ".join(failures)
            )
        return converted

    def create_catalog_entry(self, name: str, version: str) -> list[str]:
        self.catalog_store.add_entry(name, version)
        self.logger.info("Added %s@%s to catalog", name, version)
        return self.convert_existing_to_catalog(name)

    def apply_suggestion(self, suggestion: OptimizationSuggestion) -> bool:
        """Apply one suggestion; returns False when there was nothing to do."""

        if suggestion.type == "catalog":
            if not suggestion.suggested_version:
                return False
            self.create_catalog_entry(suggestion.dependency, suggestion.suggested_version)
            return True
        if suggestion.type == "duplicate-removal":
            return self.catalog_store.remove_entry(suggestion.dependency)
        if suggestion.type == "version-conflict":
            if not suggestion.suggested_version or not self.catalog_store.has_entry(suggestion.dependency):
                return False
            self.catalog_store.update_entry(suggestion.dependency, suggestion.suggested_version)
            return True
        raise ValueError(f"Unknown suggestion type: {suggestion.type!r}")

    def optimize(self) -> OptimizationReport:
        """Report optimization opportunities; apply them when `autoOptimize` is set."""

        report = self.analyzer.report(self.settings)
        if not self.settings.auto_optimize:
            self.logger.info("Found %d optimization opportunities", len(report.suggestions))
            for suggestion in report.suggestions:
                self.logger.info("  %s: %s", suggestion.impact.upper(), suggestion.description)
            return report

        self.logger.info("Applying %d optimizations...", len(report.suggestions))
        applied: list[OptimizationSuggestion] = []
        for suggestion in report.suggestions:
            try:
                changed = self.apply_suggestion(suggestion)
            except (FileSystemError, KeyError) as exc:
                self.logger.warning("Failed to apply suggestion: %s (%s)", suggestion.description, exc)
                continue
            if changed:
                applied.append(suggestion)
                self.logger.info("Applied: %s", suggestion.description)

        return OptimizationReport(
            duplicates=report.duplicates,
            suggestions=report.suggestions,
            potential_catalog_entries=report.potential_catalog_entries,
            conflicts_resolved=report.conflicts_resolved,
            duplicates_removed=report.duplicates_removed,
            applied=tuple(applied),
        )

    def migrate_to_catalog(self) -> tuple[CatalogEntry, ...]:
        """
        Move the workspace onto the catalog.

        Names with more than one declared version and common dependencies
        already in use get a pin; manifests and the catalog are then sorted and
        empty dependency sections dropped.
        """

        self.logger.info("Migrating workspace to catalog approach...")
        analysis = self.analyzer.analyze()
        catalogued = {entry.name for entry in analysis.catalog_entries}

        entries: dict[str, CatalogEntry] = {}
        for duplicate in analysis.duplicates:
            if duplicate.name in catalogued or len(duplicate.versions) < 2:
                continue
            entries[duplicate.name] = CatalogEntry(
                duplicate.name, best_version(u.version for u in duplicate.versions)
            )

        for name in self.settings.common_dependencies:
            if name in catalogued or name in entries:
                continue
            versions = [d.version for d in analysis.workspace_dependencies if d.name == name]
            direct = [v for v in versions if not v.startswith(CATALOG_SENTINEL)]
            if direct:
                entries[name] = CatalogEntry(name, direct[0])

        failures: list[FileSystemError] = []
        if entries:
            self.catalog_store.add_entries(entries.values())
            self.logger.info("Added %d entries to catalog", len(entries))
            for name in entries:
                try:
                    self.convert_existing_to_catalog(name)
                except FileSystemError as exc:
                    failures.append(exc)

        self.catalog_store.sort_catalog()
        for workspace in self.all_workspaces():
            self.manifest_store.sort_dependencies(workspace)
            self.manifest_store.cleanup_empty_dependencies(workspace)

        if failures:
            raise FileSystemError("; ".join(str(exc) for exc in failures))
        self.logger.info("Migration completed")
        return tuple(entries.values())


__all__ = ["DependencyResolver"]
