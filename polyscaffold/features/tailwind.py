from __future__ import annotations

from featurekit.activation import IncludesValue
from featurekit.feature_types import DependencyRequest, Feature, FileEdit, Stage
from polyscaffold.collaborators.edits import prepend_line_edit, vite_plugin_edit

FEATURE = Feature(
    id="tailwind",
    name="TailwindCSS",
    description="A utility-first CSS framework",
    depends_on=("vite",),
    activated_by=IncludesValue("projectWorkspaces", "react-webapp"),
    stages=(
        Stage(
            name="install-tailwind",
            dependencies=(
                DependencyRequest(
                    name=("tailwindcss", "@tailwindcss/vite"),
                    workspace="web",
                    type="devDependencies",
                ),
            ),
        ),
        Stage(
            name="configure-tailwind",
            edits=(
                FileEdit("web/vite.config.ts", (vite_plugin_edit("tailwindcss", "@tailwindcss/vite"),)),
                FileEdit("web/src/index.css", (prepend_line_edit('@import "tailwindcss";'),)),
            ),
        ),
    ),
)
