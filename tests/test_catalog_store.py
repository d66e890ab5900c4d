import pytest
import yaml

from polyscaffold.dependencies.catalog_store import (
    CatalogStore,
    InMemoryCatalogStore,
    YamlCatalogStore,
    default_descriptor,
)
from polyscaffold.dependencies.types import CatalogEntry
from polyscaffold.errors import FileSystemError


def test_missing_descriptor_reads_as_default(tmp_path):
    store = YamlCatalogStore(str(tmp_path))

    assert store.read() == default_descriptor()
    assert store.workspaces() == ["web", "api"]
    assert store.entries() == []
    assert store.get_entry("react") is None


def test_add_entries_writes_once_and_preserves_other_keys(tmp_path):
    (tmp_path / "pnpm-workspace.yaml").write_text(
        "packages:\n  - web\nonlyBuiltDependencies:\n  - esbuild\n", encoding="utf-8"
    )
    store = YamlCatalogStore(str(tmp_path))

    store.add_entries([CatalogEntry("react", "^18.2.0"), CatalogEntry("graphql", "^16.8.0")])
    store.add_entry("typescript", "^5.4.0")

    raw = yaml.safe_load((tmp_path / "pnpm-workspace.yaml").read_text(encoding="utf-8"))
    assert raw["onlyBuiltDependencies"] == ["esbuild"]
    assert raw["catalog"] == {"react": "^18.2.0", "graphql": "^16.8.0", "typescript": "^5.4.0"}
    assert store.get_entry("react") == CatalogEntry("react", "^18.2.0")


def test_update_remove_and_sort(tmp_path):
    store = InMemoryCatalogStore({"packages": ["web"], "catalog": {"zod": "^3.0.0", "axios": "^1.0.0"}})

    store.update_entry("zod", "^3.22.0")
    assert store.get_entry("zod").version == "^3.22.0"
    with pytest.raises(KeyError, match="left-pad"):
        store.update_entry("left-pad", "^1.0.0")

    assert store.remove_entry("axios") is True
    assert store.remove_entry("axios") is False

    store.add_entry("apollo", "^4.0.0")
    store.sort_catalog()
    assert [entry.name for entry in store.entries()] == ["apollo", "zod"]


def test_add_workspace_is_idempotent():
    store = InMemoryCatalogStore({"packages": ["web"]})
    assert store.add_workspace("api") is True
    assert store.add_workspace("api") is False
    assert store.workspaces() == ["web", "api"]
    assert store.writes == 1


def test_in_memory_reads_are_copies():
    store = InMemoryCatalogStore()
    doc = store.read()
    doc["catalog"]["react"] = "^18.2.0"
    assert store.has_entry("react") is False


def test_invalid_yaml_raises_file_system_error(tmp_path):
    (tmp_path / "pnpm-workspace.yaml").write_text("packages: [web\n", encoding="utf-8")
    with pytest.raises(FileSystemError, match="Invalid YAML"):
        YamlCatalogStore(str(tmp_path)).entries()


def test_wrong_shapes_raise_file_system_error(tmp_path):
    (tmp_path / "pnpm-workspace.yaml").write_text("catalog: [react]\n", encoding="utf-8")
    with pytest.raises(FileSystemError, match="'catalog' must be a mapping"):
        YamlCatalogStore(str(tmp_path)).read()


def test_validate_entries_reports_problems():
    errors = CatalogStore.validate_entries(
        [
            CatalogEntry("react", "^18.2.0"),
            CatalogEntry("", "latest"),
            CatalogEntry("lodash", "4"),
            CatalogEntry("zod", ""),
        ]
    )
    assert errors == [
        "Invalid package name: ''",
        "Invalid version format for lodash: 4",
        "Invalid version for zod: ''",
    ]
