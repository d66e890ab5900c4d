from __future__ import annotations

from typing import Any

from featurekit.activation import And, AnswerMap, Custom, Equals, IncludesValue, IsOneOf
from featurekit.feature_types import DependencyRequest, Feature, FileEdit, Stage, TemplateInstruction
from polyscaffold.collaborators.edits import package_json_edit, workspace_package_edit

UI_WORKSPACE = "packages/ui"

# packageLibrary -> (workspace, packages)
PACKAGE_LIBRARIES: dict[str, tuple[str, tuple[str, ...]]] = {
    "chakra": ("web", ("@chakra-ui/react", "@emotion/react", "@emotion/styled", "framer-motion")),
    "mui": ("web", ("@mui/material", "@emotion/react", "@emotion/styled", "@mui/icons-material")),
    "antd": ("web", ("antd", "@ant-design/icons")),
    "mantine": ("web", ("@mantine/core", "@mantine/hooks", "@mantine/notifications")),
    "nativebase": (UI_WORKSPACE, ("native-base", "react-native-svg", "react-native-safe-area-context")),
    "tamagui": (UI_WORKSPACE, ("@tamagui/core", "@tamagui/config", "@tamagui/animations-react-native")),
}

MOBILE_LIBRARIES: dict[str, tuple[str, ...]] = {
    "rn-elements": ("@rneui/themed", "@rneui/base"),
    "rn-paper": ("react-native-paper",),
    "rn-ui-kitten": ("@ui-kitten/components", "@eva-design/eva"),
}

COMPONENT_CATEGORIES: dict[str, tuple[str, ...]] = {
    "layout": ("Container", "Grid", "Stack", "Divider"),
    "forms": ("Button", "Input", "Select", "Checkbox"),
    "data": ("Card", "Badge", "Avatar", "Table"),
    "feedback": ("Alert", "Toast", "Spinner", "Progress"),
    "navigation": ("Tabs", "Breadcrumb", "Pagination", "Menu"),
    "overlay": ("Modal", "Drawer", "Popover", "Tooltip"),
}

# integrations value -> (type, packages)
INTEGRATIONS: dict[str, tuple[str, tuple[str, ...]]] = {
    "storybook": ("devDependencies", ("@storybook/react", "@storybook/addon-essentials")),
    "graphql": ("dependencies", ("@apollo/client", "graphql")),
    "forms": ("dependencies", ("react-hook-form", "@hookform/resolvers")),
    "animations": ("dependencies", ("framer-motion",)),
    "icons": ("dependencies", ("lucide-react", "@heroicons/react")),
}

TESTING_TOOLS: dict[str, tuple[str, ...]] = {
    "rtl": ("@testing-library/react", "@testing-library/user-event"),
    "jest-dom": ("@testing-library/jest-dom",),
    "visual": ("chromatic",),
    "a11y": ("jest-axe",),
}


def _multiple_platforms(value: Any, answers: AnswerMap) -> bool:
    return isinstance(value, tuple) and len(value) > 1


def _web_only(value: Any, answers: AnswerMap) -> bool:
    return value == ("web",)


def _ui(*names: str, type: str = "dependencies") -> DependencyRequest:
    return DependencyRequest(name=names, workspace=UI_WORKSPACE, type=type)


def _advanced(condition) -> And:
    return And(Equals("advancedConfig", True), condition)


def _package_library_stage(library: str) -> Stage:
    workspace, packages = PACKAGE_LIBRARIES[library]
    return Stage(
        name=f"setup-{library}-components",
        activated_by=And(Equals("componentLibrary", "package"), Equals("packageLibrary", library)),
        dependencies=(DependencyRequest(name=packages, workspace=workspace),),
    )


def _mobile_library_stage(library: str) -> Stage:
    return Stage(
        name=f"setup-{library}",
        activated_by=And(IncludesValue("platforms", "mobile"), Equals("mobileLibrary", library)),
        dependencies=(DependencyRequest(name=MOBILE_LIBRARIES[library], workspace="mobile"),),
    )


def _category_stage(category: str) -> Stage:
    return Stage(
        name=f"setup-{category}-components",
        activated_by=IncludesValue("componentCategories", category),
        templates=(
            TemplateInstruction(
                source="ui_component_library/components/index.ts.j2",
                destination=f"{UI_WORKSPACE}/src/components/{category}/index.ts",
                context={"category": category, "components": COMPONENT_CATEGORIES[category]},
            ),
        ),
    )


def _integration_stage(integration: str) -> Stage:
    dep_type, packages = INTEGRATIONS[integration]
    return Stage(
        name=f"setup-{integration}-integration",
        activated_by=IncludesValue("integrations", integration),
        dependencies=(_ui(*packages, type=dep_type),),
    )


def _testing_stage(tool: str) -> Stage:
    return Stage(
        name=f"setup-{tool}-testing",
        activated_by=_advanced(IncludesValue("testingSetup", tool)),
        dependencies=(_ui(*TESTING_TOOLS[tool], type="devDependencies"),),
    )


STAGES: tuple[Stage, ...] = (
    Stage(
        name="setup-workspace-structure",
        templates=(TemplateInstruction(source="ui_component_library/package", destination=UI_WORKSPACE),),
        edits=(FileEdit("pnpm-workspace.yaml", (workspace_package_edit(UI_WORKSPACE),)),),
    ),
    Stage(
        name="setup-shared-components",
        activated_by=Custom("platforms", _multiple_platforms, label="more than one platform selected"),
        dependencies=(_ui("react-native-web"), _ui("react-native", type="devDependencies")),
        templates=(TemplateInstruction(source="ui_component_library/shared", destination=UI_WORKSPACE),),
    ),
    Stage(
        name="setup-web-only-components",
        activated_by=And(
            IncludesValue("platforms", "web"),
            Custom("platforms", _web_only, label="web is the only platform"),
        ),
        dependencies=(_ui("react-dom"), _ui("@types/react-dom", type="devDependencies")),
    ),
    Stage(
        name="setup-shadcn-components",
        activated_by=Equals("componentLibrary", "shadcn"),
        dependencies=(
            _ui("class-variance-authority", "clsx", "tailwind-merge"),
            _ui("@types/react", type="devDependencies"),
        ),
        templates=(TemplateInstruction(source="ui_component_library/shadcn", destination=UI_WORKSPACE),),
    ),
    *(_package_library_stage(library) for library in PACKAGE_LIBRARIES),
    *(_mobile_library_stage(library) for library in MOBILE_LIBRARIES),
    Stage(
        name="setup-design-tokens",
        activated_by=IncludesValue("designSystemFeatures", "tokens"),
        templates=(
            TemplateInstruction(source="ui_component_library/tokens", destination=f"{UI_WORKSPACE}/src/tokens"),
        ),
    ),
    Stage(
        name="setup-theme-system",
        activated_by=IncludesValue("designSystemFeatures", "theming"),
        dependencies=(_ui("@emotion/react", "@emotion/styled"),),
        templates=(
            TemplateInstruction(source="ui_component_library/theme", destination=f"{UI_WORKSPACE}/src/theme"),
        ),
    ),
    Stage(
        name="setup-typography-system",
        activated_by=IncludesValue("designSystemFeatures", "typography"),
        templates=(
            TemplateInstruction(
                source="ui_component_library/typography", destination=f"{UI_WORKSPACE}/src/typography"
            ),
        ),
    ),
    *(_category_stage(category) for category in COMPONENT_CATEGORIES),
    Stage(
        name="setup-standard-accessibility",
        activated_by=IsOneOf("accessibilityLevel", ("standard", "enhanced")),
        dependencies=(_ui("@axe-core/react", type="devDependencies"),),
    ),
    Stage(
        name="setup-enhanced-accessibility",
        activated_by=Equals("accessibilityLevel", "enhanced"),
        dependencies=(_ui("jest-axe", "@testing-library/jest-dom", type="devDependencies"),),
    ),
    *(_integration_stage(integration) for integration in INTEGRATIONS),
    Stage(
        name="setup-tree-shaking-optimization",
        activated_by=_advanced(Equals("bundleOptimization", "tree-shaking")),
        edits=(FileEdit(f"{UI_WORKSPACE}/package.json", (package_json_edit(fields={"sideEffects": False}),)),),
    ),
    Stage(
        name="setup-modular-imports-optimization",
        activated_by=_advanced(Equals("bundleOptimization", "modular")),
        edits=(
            FileEdit(
                f"{UI_WORKSPACE}/package.json",
                (package_json_edit(fields={"exports": {".": "./src/index.ts", "./*": "./src/components/*/index.ts"}}),),
            ),
        ),
    ),
    *(_testing_stage(tool) for tool in TESTING_TOOLS),
    Stage(
        name="configure-workspace-integration",
        edits=(
            FileEdit(
                "package.json",
                (package_json_edit(scripts={"ui:build": f"pnpm --filter ./{UI_WORKSPACE} build"}),),
            ),
        ),
    ),
)


FEATURE = Feature(
    id="ui-component-library",
    name="UI Component Library",
    description="Shared component package with design system, theming, accessibility and integrations",
    depends_on=("vite",),
    activated_by=Equals("enableUiLibrary", True),
    configuration=(
        {"id": "platforms", "type": "multiselect", "options": ["web", "mobile"], "defaultValue": ["web"]},
        {
            "id": "componentLibrary",
            "type": "select",
            "options": ["shadcn", "package", "custom"],
            "defaultValue": "shadcn",
        },
        {"id": "packageLibrary", "type": "select", "options": list(PACKAGE_LIBRARIES), "defaultValue": "chakra"},
        {
            "id": "mobileLibrary",
            "type": "select",
            "options": ["none", *MOBILE_LIBRARIES],
            "defaultValue": "none",
        },
        {
            "id": "designSystemFeatures",
            "type": "multiselect",
            "options": ["tokens", "theming", "typography", "colors", "spacing", "variants"],
            "defaultValue": ["tokens", "theming", "typography", "colors"],
        },
        {
            "id": "componentCategories",
            "type": "multiselect",
            "options": list(COMPONENT_CATEGORIES),
            "defaultValue": ["layout", "forms", "feedback"],
        },
        {
            "id": "accessibilityLevel",
            "type": "select",
            "options": ["basic", "standard", "enhanced"],
            "defaultValue": "standard",
        },
        {"id": "integrations", "type": "multiselect", "options": list(INTEGRATIONS), "defaultValue": ["icons"]},
        {"id": "advancedConfig", "type": "toggle", "defaultValue": False},
        {
            "id": "bundleOptimization",
            "type": "select",
            "options": ["tree-shaking", "modular", "full"],
            "defaultValue": "tree-shaking",
        },
        {
            "id": "testingSetup",
            "type": "multiselect",
            "options": list(TESTING_TOOLS),
            "defaultValue": ["rtl", "jest-dom"],
        },
    ),
    stages=STAGES,
)
