"""Dependency maintenance commands: analyze, optimize, migrate."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from polyscaffold.dependencies.resolver import DependencyResolver
from polyscaffold.dependencies.settings import DependencySettings, SettingsStore
from polyscaffold.dependencies.types import DependencyAnalysis, OptimizationReport
from polyscaffold.foundation.logging_utils import close_logger, open_run_logger


def analysis_to_dict(analysis: DependencyAnalysis) -> dict[str, Any]:
    return {
        "catalog": {entry.name: entry.version for entry in analysis.catalog_entries},
        "dependencies": len(analysis.workspace_dependencies),
        "duplicates": [
            {
                "name": conflict.name,
                "versions": [
                    {"version": usage.version, "workspaces": list(usage.workspaces)}
                    for usage in conflict.versions
                ],
            }
            for conflict in analysis.duplicates
        ],
        "missing_from_catalog": list(analysis.missing_from_catalog),
        "unused_catalog_entries": list(analysis.unused_catalog_entries),
    }


def report_to_dict(report: OptimizationReport) -> dict[str, Any]:
    return {
        "suggestions": [s.to_dict() for s in report.suggestions],
        "potential_catalog_entries": list(report.potential_catalog_entries),
        "conflicts_resolved": report.conflicts_resolved,
        "duplicates_removed": report.duplicates_removed,
        "applied": [s.to_dict() for s in report.applied],
    }


def _resolver(project_dir: str, logger, overrides: Mapping[str, Any] | None) -> DependencyResolver:
    settings: DependencySettings = SettingsStore(project_dir).load()
    if overrides:
        settings = settings.with_overrides(overrides)
    return DependencyResolver.for_project(project_dir, settings, logger=logger)


def analyze(project_dir: str, *, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    logger, _log_file = open_run_logger(environ=environ)
    try:
        resolver = _resolver(project_dir, logger, None)
        analysis = resolver.analyzer.analyze()
        stats = resolver.analyzer.stats()
        logger.info(
            "Analyzed %d dependencies across %d workspaces (%d duplicated, %d catalogued)",
            stats.total_dependencies,
            stats.workspace_count,
            stats.duplicated_dependencies,
            stats.catalog_dependencies,
        )
        payload = analysis_to_dict(analysis)
        payload["report"] = report_to_dict(resolver.analyzer.report(resolver.settings))
        payload["stats"] = {
            "total_dependencies": stats.total_dependencies,
            "catalog_dependencies": stats.catalog_dependencies,
            "duplicated_dependencies": stats.duplicated_dependencies,
            "workspace_count": stats.workspace_count,
            "average_dependencies_per_workspace": round(stats.average_dependencies_per_workspace, 2),
        }
        return payload
    finally:
        close_logger(logger)


def optimize(
    project_dir: str, *, apply: bool = False, environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    logger, _log_file = open_run_logger(environ=environ)
    try:
        resolver = _resolver(project_dir, logger, {"autoOptimize": True} if apply else None)
        return report_to_dict(resolver.optimize())
    finally:
        close_logger(logger)


def migrate(project_dir: str, *, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    logger, _log_file = open_run_logger(environ=environ)
    try:
        resolver = _resolver(project_dir, logger, None)
        entries = resolver.migrate_to_catalog()
        return {"catalogued": {entry.name: entry.version for entry in entries}}
    finally:
        close_logger(logger)


__all__ = ["analysis_to_dict", "analyze", "migrate", "optimize", "report_to_dict"]
