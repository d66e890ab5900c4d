from __future__ import annotations

from featurekit.activation import Equals
from featurekit.feature_types import DependencyRequest, Feature, FileEdit, ScriptStep, Stage, TemplateInstruction
from polyscaffold.collaborators.edits import package_json_edit

DEVX_SCRIPTS = {
    "lint": "eslint .",
    "lint:fix": "eslint . --fix",
    "format": "prettier --check .",
    "format:fix": "prettier --write .",
}


def _root_dev(*names: str) -> DependencyRequest:
    return DependencyRequest(name=names, workspace="root", type="devDependencies")


FEATURE = Feature(
    id="developer-experience",
    name="Developer Experience Suite",
    description="Linting, formatting, commit conventions and release tooling",
    activated_by=Equals("enableDevX", True),
    configuration=(
        {"id": "includeAccessibility", "type": "boolean", "defaultValue": True},
        {"id": "includeImportSorting", "type": "boolean", "defaultValue": True},
        {"id": "enableConventionalCommits", "type": "boolean", "defaultValue": True},
        {"id": "enableSemanticRelease", "type": "boolean", "defaultValue": False},
    ),
    stages=(
        Stage(
            name="install-core-dependencies",
            dependencies=(
                _root_dev(
                    "@eslint/js",
                    "@typescript-eslint/eslint-plugin",
                    "@typescript-eslint/parser",
                    "eslint",
                    "eslint-plugin-react-hooks",
                    "eslint-plugin-react-refresh",
                    "prettier",
                    "globals",
                ),
            ),
        ),
        Stage(
            name="install-accessibility-tools",
            activated_by=Equals("includeAccessibility", True),
            dependencies=(_root_dev("eslint-plugin-jsx-a11y"),),
        ),
        Stage(
            name="install-import-sorting-tools",
            activated_by=Equals("includeImportSorting", True),
            dependencies=(
                _root_dev("eslint-plugin-import", "prettier-plugin-organize-imports", "prettier-plugin-packagejson"),
            ),
        ),
        Stage(
            name="install-git-hooks-and-conventional-commits",
            activated_by=Equals("enableConventionalCommits", True),
            dependencies=(_root_dev("lint-staged", "@commitlint/cli", "@commitlint/config-conventional"),),
        ),
        Stage(
            name="install-semantic-release",
            activated_by=Equals("enableSemanticRelease", True),
            dependencies=(
                _root_dev(
                    "semantic-release",
                    "@semantic-release/changelog",
                    "@semantic-release/git",
                    "@semantic-release/github",
                    "@semantic-release/npm",
                ),
            ),
        ),
        Stage(
            name="setup-configuration-files",
            templates=(TemplateInstruction(source="developer_experience", destination="."),),
        ),
        Stage(
            name="update-package-json",
            edits=(FileEdit("package.json", (package_json_edit(scripts=DEVX_SCRIPTS),)),),
        ),
        Stage(
            name="run-linting-formatting",
            scripts=(ScriptStep("pnpm lint:fix && pnpm format:fix"),),
        ),
    ),
)
