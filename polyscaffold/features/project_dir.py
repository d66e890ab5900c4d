from __future__ import annotations

from featurekit.feature_types import Feature, Stage, TemplateInstruction

FEATURE = Feature(
    id="projectDir",
    name="Project Directory",
    description="The root directory of the project",
    stages=(
        Stage(
            name="create-workspace",
            templates=(
                TemplateInstruction(source="project_dir/pnpm-workspace.yaml.j2", destination="pnpm-workspace.yaml"),
                TemplateInstruction(source="project_dir/package.json.j2", destination="package.json"),
            ),
        ),
    ),
)
