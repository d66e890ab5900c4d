from __future__ import annotations

from featurekit.activation import IncludesValue
from featurekit.feature_types import Feature, FileEdit, ScriptStep, Stage
from polyscaffold.collaborators.edits import workspace_package_edit

FEATURE = Feature(
    id="vite",
    name="Vite",
    description="A modern frontend build tool",
    depends_on=("projectDir",),
    activated_by=IncludesValue("projectWorkspaces", "react-webapp"),
    stages=(
        Stage(
            name="create-vite-app",
            scripts=(ScriptStep("pnpm create vite@latest web --template react-ts"),),
            edits=(FileEdit("pnpm-workspace.yaml", (workspace_package_edit("web"),)),),
        ),
    ),
)
