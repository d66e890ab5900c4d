from __future__ import annotations

from featurekit.activation import IncludesValue
from featurekit.feature_types import DependencyRequest, Feature, FileEdit, Stage, TemplateInstruction
from polyscaffold.collaborators.edits import package_json_edit, workspace_package_edit

API_SCRIPTS = {
    "compile": "tsc",
    "build": "tsc -b tsconfig.build.json",
    "dev": 'tsx watch --include "./src/**/*" ./src/index.ts',
}

FEATURE = Feature(
    id="apollo-server",
    name="Apollo Server",
    description="A GraphQL server for the api workspace",
    depends_on=("projectDir",),
    activated_by=IncludesValue("projectWorkspaces", "graphql-server"),
    stages=(
        Stage(
            name="setup-api-structure",
            templates=(TemplateInstruction(source="apollo_server", destination="api"),),
            edits=(
                FileEdit("api/package.json", (package_json_edit(fields={"type": "module"}, scripts=API_SCRIPTS),)),
                FileEdit("pnpm-workspace.yaml", (workspace_package_edit("api"),)),
            ),
        ),
        Stage(
            name="install-dependencies",
            dependencies=(
                DependencyRequest(name=("@apollo/server", "graphql"), workspace="api"),
                DependencyRequest(
                    name=("typescript", "@types/node", "tsx"),
                    workspace="api",
                    type="devDependencies",
                ),
            ),
        ),
        Stage(
            name="create-modules",
            dependencies=(
                DependencyRequest(
                    name=(
                        "@graphql-tools/load-files",
                        "@graphql-tools/merge",
                        "@graphql-tools/utils",
                        "graphql-scalars",
                    ),
                    workspace="api",
                ),
            ),
        ),
    ),
)
