from __future__ import annotations

from featurekit.activation import Equals, IncludesValue
from featurekit.feature_types import DependencyRequest, Feature, FileEdit, ScriptStep, Stage, TemplateInstruction
from polyscaffold.collaborators.edits import package_json_edit, workspace_package_edit

FEATURE = Feature(
    id="mobile",
    name="Mobile App Support",
    description="Expo based React Native application in the mobile workspace",
    depends_on=("apollo-server",),
    activated_by=IncludesValue("projectWorkspaces", "mobile-app"),
    configuration=(
        {"id": "mobileFramework", "type": "select", "options": ["expo"], "defaultValue": "expo"},
        {
            "id": "mobileNavigation",
            "type": "select",
            "options": ["react-navigation", "none"],
            "defaultValue": "react-navigation",
        },
        {"id": "mobileAppName", "type": "text", "defaultValue": "mobile-app"},
        {"id": "bundleId", "type": "text", "defaultValue": "com.example.mobile"},
    ),
    stages=(
        Stage(
            name="create-expo-app",
            activated_by=Equals("mobileFramework", "expo"),
            scripts=(ScriptStep("npx create-expo-app@latest mobile --template blank-typescript"),),
            templates=(TemplateInstruction(source="mobile/expo-config", destination="mobile"),),
            edits=(
                FileEdit("pnpm-workspace.yaml", (workspace_package_edit("mobile"),)),
                FileEdit(
                    "package.json",
                    (package_json_edit(scripts={"mobile": "pnpm --filter mobile start"}),),
                ),
            ),
        ),
        Stage(
            name="setup-navigation",
            activated_by=Equals("mobileNavigation", "react-navigation"),
            dependencies=(
                DependencyRequest(
                    name=(
                        "@react-navigation/native",
                        "@react-navigation/stack",
                        "@react-navigation/bottom-tabs",
                        "react-native-screens",
                        "react-native-safe-area-context",
                    ),
                    workspace="mobile",
                ),
            ),
        ),
    ),
)
