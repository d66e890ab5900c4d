from polyscaffold.dependencies.analyzer import (
    DependencyAnalyzer,
    dependencies_to_frame,
    find_duplicates,
    impact_for_workspaces,
)
from polyscaffold.dependencies.catalog_store import InMemoryCatalogStore
from polyscaffold.dependencies.manifest_store import InMemoryManifestStore
from polyscaffold.dependencies.settings import DependencySettings
from polyscaffold.dependencies.types import DependencyConflict, VersionUsage


def _analyzer(catalog=None, manifests=None, packages=("web", "api")):
    return DependencyAnalyzer(
        InMemoryCatalogStore({"packages": list(packages), "catalog": catalog or {}}),
        InMemoryManifestStore(manifests or {}),
    )


def test_one_duplicate_for_diverging_versions():
    analyzer = _analyzer(
        manifests={
            "web": {"dependencies": {"react": "^18.2.0"}},
            "api": {"dependencies": {"react": "^17.0.2"}},
        }
    )

    analysis = analyzer.analyze()

    assert analysis.duplicates == (
        DependencyConflict(
            name="react",
            versions=(VersionUsage("^18.2.0", ("web",)), VersionUsage("^17.0.2", ("api",))),
        ),
    )
    assert analysis.missing_from_catalog == ("react",)
    assert analysis.unused_catalog_entries == ()


def test_same_version_in_two_workspaces_is_one_usage_group():
    frame = dependencies_to_frame(
        _analyzer(
            manifests={
                "root": {"devDependencies": {"typescript": "^5.4.0"}},
                "web": {"devDependencies": {"typescript": "^5.4.0"}},
            }
        ).collect()
    )

    assert find_duplicates(frame) == (
        DependencyConflict("typescript", (VersionUsage("^5.4.0", ("root", "web")),)),
    )


def test_unused_catalog_entries_and_catalogued_duplicates():
    analyzer = _analyzer(
        catalog={"react": "^18.2.0", "left-pad": "^1.0.0"},
        manifests={
            "web": {"dependencies": {"react": "catalog:"}},
            "api": {"dependencies": {"react": "catalog:"}},
        },
    )

    analysis = analyzer.analyze()
    assert analysis.unused_catalog_entries == ("left-pad",)
    assert analysis.missing_from_catalog == ()

    suggestions = analyzer.suggestions(DependencySettings())
    # sentinel-only duplicates need no catalog suggestion
    assert [(s.type, s.dependency) for s in suggestions] == [("duplicate-removal", "left-pad")]


def test_suggestion_impact_scales_with_workspace_count():
    assert impact_for_workspaces(3) == "high"
    assert impact_for_workspaces(2) == "medium"
    assert impact_for_workspaces(1) == "low"

    analyzer = _analyzer(
        manifests={
            "root": {"dependencies": {"zod": "^3.0.0"}},
            "web": {"dependencies": {"zod": "^3.0.0"}},
            "api": {"dependencies": {"zod": "^3.0.0"}},
        }
    )
    suggestions = analyzer.suggestions(DependencySettings())
    assert [(s.type, s.impact, s.suggested_version) for s in suggestions] == [("catalog", "high", "^3.0.0")]


def test_common_dependency_below_threshold_gets_no_suggestion():
    analyzer = _analyzer(manifests={"web": {"dependencies": {"graphql": "^16.8.0"}}})
    assert analyzer.suggestions(DependencySettings()) == ()


def test_report_counts():
    analyzer = _analyzer(
        catalog={"unused": "^1.0.0"},
        manifests={
            "web": {"dependencies": {"react": "^18.2.0"}},
            "api": {"dependencies": {"react": "^17.0.2"}},
        },
    )

    report = analyzer.report(DependencySettings())

    assert report.conflicts_resolved == 1
    assert report.duplicates_removed == 1
    assert report.potential_catalog_entries == ("react",)
    assert report.suggestions[0].type == "version-conflict"


def test_should_be_catalogued_and_usage_count():
    analyzer = _analyzer(
        manifests={
            "web": {"dependencies": {"zod": "catalog:"}},
            "api": {"dependencies": {"zod": "^3.0.0"}},
        }
    )

    assert analyzer.usage_count("zod") == 2
    assert analyzer.usage_count("zod", ["web"]) == 1

    shared, reason = analyzer.should_be_catalogued("zod", DependencySettings())
    assert shared is True
    assert "threshold: 2" in reason

    shared, reason = analyzer.should_be_catalogued("react", DependencySettings())
    assert shared is True
    assert reason == "Listed as common dependency in configuration"

    shared, _ = analyzer.should_be_catalogued("zod", DependencySettings(catalog_threshold=3))
    assert shared is False


def test_stats():
    analyzer = _analyzer(
        catalog={"react": "^18.2.0"},
        manifests={
            "web": {"dependencies": {"react": "catalog:", "vite": "^5.0.0"}},
            "api": {"dependencies": {"react": "catalog:"}},
        },
    )

    stats = analyzer.stats()

    assert stats.total_dependencies == 3
    assert stats.catalog_dependencies == 1
    assert stats.duplicated_dependencies == 1
    assert stats.workspace_count == 3
    assert stats.average_dependencies_per_workspace == 1.0


def test_empty_workspace_has_empty_frame():
    frame = _analyzer().dependency_frame()
    assert frame.empty
    assert list(frame.columns) == ["name", "version", "type", "workspace", "manifest_path", "uses_catalog"]
