import logging

import pytest

from featurekit.feature_types import DependencyRequest
from polyscaffold.dependencies.catalog_store import InMemoryCatalogStore
from polyscaffold.dependencies.manifest_store import InMemoryManifestStore
from polyscaffold.dependencies.resolver import DependencyResolver
from polyscaffold.dependencies.settings import DependencySettings
from polyscaffold.dependencies.types import CatalogEntry, OptimizationSuggestion
from polyscaffold.errors import DependencyConflictError, FileSystemError


def _resolver(catalog=None, manifests=None, **settings):
    return DependencyResolver(
        InMemoryCatalogStore({"packages": ["web", "api"], "catalog": catalog or {}}),
        InMemoryManifestStore(manifests or {}),
        DependencySettings(**settings),
        logger=logging.getLogger("tests.resolver"),
    )


def test_fresh_dependency_is_added_directly_with_formatted_version():
    resolver = _resolver()

    resolution = resolver.add(DependencyRequest(name="left-pad", workspace="web", version="1.0.0"))

    assert resolution.action == "add-direct"
    assert resolution.version == "^1.0.0"
    assert resolver.manifest_store.read("web") == {"dependencies": {"left-pad": "^1.0.0"}}
    assert resolver.catalog_store.entries() == []


def test_missing_version_uses_registry_placeholder():
    resolution = _resolver().resolve(DependencyRequest(name="left-pad", workspace="web"))
    assert resolution.action == "add-direct"
    assert resolution.version == "latest"


def test_existing_catalog_entry_is_referenced():
    resolver = _resolver(catalog={"react": "^18.2.0"})

    resolution = resolver.add(DependencyRequest(name="react", workspace="web", version="17.0.0"))

    assert resolution.action == "use-catalog"
    assert resolution.catalog_entry == CatalogEntry("react", "^18.2.0")
    assert resolver.manifest_store.read("web") == {"dependencies": {"react": "catalog:"}}
    assert resolver.catalog_store.get_entry("react").version == "^18.2.0"


def test_dependency_in_another_workspace_is_promoted_to_catalog():
    resolver = _resolver(manifests={"web": {"dependencies": {"lodash": "^4.17.0"}}})

    resolution = resolver.add(DependencyRequest(name="lodash", workspace="api", version="4.17.21"))

    assert resolution.action == "add-to-catalog"
    assert resolver.catalog_store.get_entry("lodash") == CatalogEntry("lodash", "^4.17.21")
    assert resolver.manifest_store.read("api")["dependencies"]["lodash"] == "catalog:"
    assert resolver.manifest_store.read("web")["dependencies"]["lodash"] == "catalog:"
    assert resolver.catalog_store.writes == 1


def test_promoted_pin_falls_back_to_first_existing_direct_version():
    resolver = _resolver(manifests={"api": {"dependencies": {"lodash": "^4.17.0"}}})

    resolution = resolver.resolve(DependencyRequest(name="lodash", workspace="web"))

    assert resolution.catalog_entry == CatalogEntry("lodash", "^4.17.0")


def test_common_dependency_goes_to_catalog_even_when_unused():
    resolution = _resolver().resolve(DependencyRequest(name="typescript", workspace="api", version="5.4.0"))

    assert resolution.action == "add-to-catalog"
    assert resolution.version == "catalog:"
    assert resolution.catalog_entry == CatalogEntry("typescript", "^5.4.0")


def test_threshold_counts_usage_when_auto_catalog_is_off():
    manifests = {
        "web": {"dependencies": {"zod": "^3.0.0"}},
        "api": {"dependencies": {"zod": "^3.1.0"}},
    }
    resolver = _resolver(manifests=manifests, auto_catalog=False, catalog_threshold=2)

    resolution = resolver.resolve(DependencyRequest(name="zod", workspace="mobile"))

    assert resolution.action == "add-to-catalog"
    assert resolution.catalog_entry == CatalogEntry("zod", "^3.0.0")

    below = _resolver(manifests=manifests, auto_catalog=False, catalog_threshold=3)
    assert below.resolve(DependencyRequest(name="zod", workspace="mobile")).action == "add-direct"


def test_version_conflict_raises_unless_forced(caplog):
    manifests = {"web": {"dependencies": {"left-pad": "^1.0.0"}}}
    resolver = _resolver(manifests=manifests)
    request = DependencyRequest(name="left-pad", workspace="web", version="2.0.0")

    assert resolver.resolve(request).action == "conflict"
    with pytest.raises(DependencyConflictError, match="Cannot add left-pad to web") as excinfo:
        resolver.add(request)
    assert excinfo.value.name == "left-pad"
    assert resolver.manifest_store.read("web")["dependencies"]["left-pad"] == "^1.0.0"

    forced = DependencyRequest(name="left-pad", workspace="web", version="2.0.0", force=True)
    with caplog.at_level(logging.WARNING, logger="tests.resolver"):
        resolution = resolver.add(forced)

    assert resolution.action == "add-direct"
    assert resolution.warnings
    assert resolver.manifest_store.read("web")["dependencies"]["left-pad"] == "^2.0.0"
    assert "Overwrote left-pad@^1.0.0 in web" in caplog.text


def test_same_version_in_same_workspace_is_not_a_conflict():
    resolver = _resolver(manifests={"web": {"dependencies": {"left-pad": "^1.0.0"}}})
    resolution = resolver.resolve(DependencyRequest(name="left-pad", workspace="web", version="1.0.0"))
    assert resolution.action == "add-direct"


def test_resolve_requires_single_name():
    with pytest.raises(ValueError, match="single-name request"):
        _resolver().resolve(DependencyRequest(name=("a", "b"), workspace="web"))


def test_add_all_coalesces_writes():
    resolver = _resolver()

    result = resolver.add_all(
        [
            DependencyRequest(name=("typescript", "left-pad"), workspace="web"),
            DependencyRequest(name="vite", workspace="web", type="devDependencies", version="5.0.0"),
        ]
    )

    assert [r.action for r in result.resolutions] == ["add-to-catalog", "add-direct", "add-direct"]
    assert resolver.catalog_store.writes == 1
    assert resolver.manifest_store.writes == ["web"]
    assert result.written == {"web": ("typescript", "left-pad", "vite")}
    assert resolver.manifest_store.read("web") == {
        "dependencies": {"typescript": "catalog:", "left-pad": "latest"},
        "devDependencies": {"vite": "^5.0.0"},
    }


def test_add_all_first_request_decides_catalog_pin():
    resolver = _resolver()

    result = resolver.add_all(
        [
            DependencyRequest(name="react", workspace="web", version="18.2.0"),
            DependencyRequest(name="react", workspace="api", version="17.0.0"),
        ]
    )

    assert result.catalog_entries == (CatalogEntry("react", "^18.2.0"),)
    assert resolver.manifest_store.read("api")["dependencies"]["react"] == "catalog:"


def test_add_all_skips_conflicts_and_keeps_going(caplog):
    resolver = _resolver(manifests={"web": {"dependencies": {"left-pad": "^1.0.0"}}})

    with caplog.at_level(logging.WARNING, logger="tests.resolver"):
        result = resolver.add_all(
            [
                DependencyRequest(name="left-pad", workspace="web", version="2.0.0"),
                DependencyRequest(name="react-dom", workspace="web", version="18.2.0"),
            ]
        )

    assert [r.request.name for r in result.skipped] == ["left-pad"]
    assert resolver.manifest_store.read("web")["dependencies"] == {
        "left-pad": "^1.0.0",
        "react-dom": "^18.2.0",
    }
    assert "Skipping left-pad due to conflict" in caplog.text


def test_add_all_reports_conflicting_requests_within_one_batch(caplog):
    resolver = _resolver()

    with caplog.at_level(logging.WARNING, logger="tests.resolver"):
        result = resolver.add_all(
            [
                DependencyRequest(name="left-pad", workspace="web", version="1.0.0"),
                DependencyRequest(name="left-pad", workspace="web", version="2.0.0"),
                DependencyRequest(name="left-pad", workspace="web", version="1.0.0"),
            ]
        )

    assert [r.action for r in result.resolutions] == ["add-direct", "conflict", "add-direct"]
    assert [r.version for r in result.skipped] == ["^2.0.0"]
    assert resolver.manifest_store.read("web") == {"dependencies": {"left-pad": "^1.0.0"}}
    assert result.written == {"web": ("left-pad",)}
    assert "Skipping left-pad due to conflict: Version conflict within batch" in caplog.text


def test_add_all_forced_request_replaces_queued_version(caplog):
    resolver = _resolver()

    with caplog.at_level(logging.WARNING, logger="tests.resolver"):
        result = resolver.add_all(
            [
                DependencyRequest(name="left-pad", workspace="web", version="1.0.0"),
                DependencyRequest(name="left-pad", workspace="web", version="2.0.0", force=True),
            ]
        )

    assert result.skipped == ()
    assert resolver.manifest_store.read("web") == {"dependencies": {"left-pad": "^2.0.0"}}
    assert "Replaced queued left-pad@^1.0.0 in web" in caplog.text


def test_failed_sentinel_rewrite_is_reported_after_all_workspaces():
    resolver = _resolver(
        manifests={
            "root": {"dependencies": {"graphql": "^16.0.0"}},
            "api": {"dependencies": {"graphql": "^16.8.0"}},
        }
    )
    resolver.manifest_store.fail_on.add("api")

    with pytest.raises(FileSystemError, match="api"):
        resolver.add_all([DependencyRequest(name="graphql", workspace="web")])

    assert resolver.catalog_store.get_entry("graphql") == CatalogEntry("graphql", "^16.0.0")
    assert resolver.manifest_store.read("root")["dependencies"]["graphql"] == "catalog:"
    assert resolver.manifest_store.read("web")["dependencies"]["graphql"] == "catalog:"
    assert resolver.manifest_store.read("api")["dependencies"]["graphql"] == "^16.8.0"


def _drifted():
    return _resolver(
        catalog={"left-pad": "^1.0.0"},
        manifests={
            "web": {"dependencies": {"react": "^18.2.0", "typescript": "^5.0.0"}},
            "api": {"dependencies": {"react": "^17.0.2", "typescript": "^5.0.0", "express": "^4.19.0"}},
        },
    )


def test_optimize_reports_without_applying_by_default():
    resolver = _drifted()

    report = resolver.optimize()

    assert [(s.type, s.dependency, s.impact) for s in report.suggestions] == [
        ("version-conflict", "react", "high"),
        ("catalog", "react", "medium"),
        ("catalog", "typescript", "medium"),
        ("duplicate-removal", "left-pad", "low"),
    ]
    assert report.applied == ()
    assert resolver.catalog_store.has_entry("left-pad")


def test_optimize_applies_when_enabled():
    resolver = _drifted()
    resolver.settings = DependencySettings(auto_optimize=True)

    report = resolver.optimize()

    assert [(s.type, s.dependency) for s in report.applied] == [
        ("catalog", "react"),
        ("catalog", "typescript"),
        ("duplicate-removal", "left-pad"),
    ]
    assert resolver.catalog_store.get_entry("react").version == "^18.2.0"
    assert resolver.catalog_store.has_entry("left-pad") is False
    assert resolver.manifest_store.read("api")["dependencies"]["react"] == "catalog:"


def test_apply_suggestion_handles_each_type():
    resolver = _resolver(catalog={"react": "^17.0.2"})

    conflict = OptimizationSuggestion("version-conflict", "react", "d", "high", suggested_version="^18.2.0")
    assert resolver.apply_suggestion(conflict) is True
    assert resolver.catalog_store.get_entry("react").version == "^18.2.0"

    uncatalogued = OptimizationSuggestion("version-conflict", "vue", "d", "high", suggested_version="^3.0.0")
    assert resolver.apply_suggestion(uncatalogued) is False

    with pytest.raises(ValueError, match="Unknown suggestion type"):
        resolver.apply_suggestion(OptimizationSuggestion("rename", "react", "d", "low"))


def test_migrate_pins_drifted_and_common_dependencies():
    resolver = _drifted()

    entries = resolver.migrate_to_catalog()

    assert entries == (CatalogEntry("react", "^18.2.0"), CatalogEntry("typescript", "^5.0.0"))
    assert [e.name for e in resolver.catalog_store.entries()] == ["left-pad", "react", "typescript"]
    assert resolver.manifest_store.read("api")["dependencies"] == {
        "express": "^4.19.0",
        "react": "catalog:",
        "typescript": "catalog:",
    }
    assert list(resolver.manifest_store.read("api")["dependencies"]) == ["express", "react", "typescript"]


def test_for_project_uses_files_on_disk(tmp_path):
    (tmp_path / "pnpm-workspace.yaml").write_text("packages:\n  - web\ncatalog: {}\n", encoding="utf-8")
    resolver = DependencyResolver.for_project(str(tmp_path))

    resolver.add(DependencyRequest(name="react", workspace="web", version="18.2.0"))

    assert resolver.catalog_store.get_entry("react") == CatalogEntry("react", "^18.2.0")
    assert (tmp_path / "web" / "package.json").exists()
