from __future__ import annotations

from featurekit.activation import And, IncludesValue
from featurekit.feature_types import DependencyRequest, Feature, FileEdit, ScriptStep, Stage, TemplateInstruction
from polyscaffold.collaborators.edits import package_json_edit

PRISMA_SCRIPTS = {
    "prisma:generate": "prisma generate",
    "prisma:push": "prisma db push",
    "prisma:migrate": "prisma migrate dev",
    "prisma:deploy": "prisma migrate deploy",
    "prisma:reset": "prisma migrate reset",
    "prisma:seed": "tsx prisma/seed.ts",
    "prisma:studio": "prisma studio",
}

FEATURE = Feature(
    id="prisma",
    name="Prisma ORM",
    description="Database ORM with schema management and type-safe client generation",
    depends_on=("apollo-server",),
    activated_by=And(
        IncludesValue("projectWorkspaces", "graphql-server"),
        IncludesValue("apiFeatures", "database"),
    ),
    configuration=(
        {
            "id": "datasourceProvider",
            "type": "select",
            "title": "Database provider",
            "options": ["sqlite", "postgresql", "mysql"],
            "defaultValue": "sqlite",
        },
    ),
    stages=(
        Stage(
            name="install-prisma-dependencies",
            dependencies=(
                DependencyRequest(name="@prisma/client", workspace="api"),
                DependencyRequest(name="prisma", workspace="api", type="devDependencies"),
            ),
        ),
        Stage(
            name="setup-prisma-files",
            scripts=(
                ScriptStep(
                    "npx prisma init --datasource-provider {{datasourceProvider}} --output ../generated/prisma",
                    directory="api",
                ),
            ),
            templates=(TemplateInstruction(source="prisma", destination="api"),),
        ),
        Stage(
            name="configure-prisma-scripts",
            edits=(FileEdit("api/package.json", (package_json_edit(scripts=PRISMA_SCRIPTS),)),),
        ),
        Stage(
            name="generate-prisma-client",
            scripts=(ScriptStep("pnpm prisma:generate", directory="api"),),
        ),
    ),
)
