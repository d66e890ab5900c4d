import pytest

from featurekit.activation import evaluate
from featurekit.graph import select_features
from polyscaffold.app.scaffold import answers_with_defaults, feature_configurations
from polyscaffold.features import BASE_FEATURES, get_feature_registry


def test_builtin_registry_is_valid_and_complete():
    registry = get_feature_registry()

    assert set(registry.available()) == {
        "apollo-server",
        "developer-experience",
        "graphql-client",
        "mobile",
        "prisma",
        "projectDir",
        "tailwind",
        "ui-component-library",
        "vite",
    }
    assert get_feature_registry() is registry


@pytest.mark.parametrize(
    ("answers", "expected"),
    [
        ({}, ("projectDir",)),
        ({"projectWorkspaces": ["react-webapp"]}, ("projectDir", "vite", "tailwind")),
        (
            {"projectWorkspaces": ["graphql-server"], "apiFeatures": ["database"]},
            ("projectDir", "apollo-server", "prisma"),
        ),
        (
            {"projectWorkspaces": ["react-webapp", "graphql-server"], "graphqlClient": "urql"},
            ("projectDir", "vite", "tailwind", "apollo-server", "graphql-client"),
        ),
        (
            {"projectWorkspaces": ["react-webapp", "graphql-server"], "graphqlClient": "none"},
            ("projectDir", "vite", "tailwind", "apollo-server"),
        ),
        ({"enableDevX": True}, ("projectDir", "developer-experience")),
        ({"enableUiLibrary": True}, ("projectDir", "vite", "ui-component-library")),
    ],
)
def test_features_selected_from_answers(answers, expected):
    assert select_features(get_feature_registry(), answers, always=BASE_FEATURES) == expected


def test_graphql_client_has_one_stage_per_client():
    feature = get_feature_registry().get("graphql-client")
    assert [stage.name for stage in feature.stages] == [
        "setup-apollo-client",
        "setup-urql",
        "setup-graphql-request",
    ]
    assert feature.depends_on == ("vite",)


def test_every_feature_is_described():
    rows = get_feature_registry().describe()
    tailwind = next(row for row in rows if row["feature_id"] == "tailwind")
    assert tailwind["depends_on"] == ["vite"]
    assert [stage["name"] for stage in tailwind["stages"]] == ["install-tailwind", "configure-tailwind"]


def _active_ui_stages(answers):
    registry = get_feature_registry()
    configs = feature_configurations(registry, ["ui-component-library"], answers)
    effective = answers_with_defaults(answers, configs)
    feature = registry.get("ui-component-library")
    return [
        stage.name
        for stage in feature.stages
        if stage.activated_by is None or evaluate(stage.activated_by, effective, feature.id)
    ]


def test_ui_library_defaults_build_a_web_only_shadcn_package():
    assert _active_ui_stages({"enableUiLibrary": True}) == [
        "setup-workspace-structure",
        "setup-web-only-components",
        "setup-shadcn-components",
        "setup-design-tokens",
        "setup-theme-system",
        "setup-typography-system",
        "setup-layout-components",
        "setup-forms-components",
        "setup-feedback-components",
        "setup-standard-accessibility",
        "setup-icons-integration",
        "configure-workspace-integration",
    ]


def test_ui_library_stages_follow_platform_and_library_choices():
    answers = {
        "platforms": ["web", "mobile"],
        "componentLibrary": "package",
        "packageLibrary": "mantine",
        "mobileLibrary": "rn-paper",
        "designSystemFeatures": ["tokens"],
        "componentCategories": ["overlay"],
        "accessibilityLevel": "enhanced",
        "integrations": [],
    }

    assert _active_ui_stages(answers) == [
        "setup-workspace-structure",
        "setup-shared-components",
        "setup-mantine-components",
        "setup-rn-paper",
        "setup-design-tokens",
        "setup-overlay-components",
        "setup-standard-accessibility",
        "setup-enhanced-accessibility",
        "configure-workspace-integration",
    ]


def test_ui_library_advanced_stages_need_advanced_config():
    answers = {"bundleOptimization": "modular", "testingSetup": ["a11y"]}

    assert "setup-modular-imports-optimization" not in _active_ui_stages(answers)

    advanced = _active_ui_stages({**answers, "advancedConfig": True})
    assert "setup-modular-imports-optimization" in advanced
    assert "setup-a11y-testing" in advanced
    assert "setup-rtl-testing" not in advanced
    assert "setup-tree-shaking-optimization" not in advanced
