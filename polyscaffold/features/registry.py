from __future__ import annotations

from functools import lru_cache

from featurekit.feature_registry import FeatureRegistry

# always part of a scaffold, whatever the answers select
BASE_FEATURES: tuple[str, ...] = ("projectDir",)


@lru_cache(maxsize=1)
def get_feature_registry() -> FeatureRegistry:
    # feature modules each define a `FEATURE`; this is the single import point
    from polyscaffold.features import (  # noqa: PLC0415
        apollo_server,
        developer_experience,
        graphql_client,
        mobile,
        prisma,
        project_dir,
        tailwind,
        ui_component_library,
        vite,
    )

    registry = FeatureRegistry.from_features(
        module.FEATURE
        for module in (
            project_dir,
            vite,
            tailwind,
            apollo_server,
            prisma,
            graphql_client,
            developer_experience,
            ui_component_library,
            mobile,
        )
    )
    registry.validate()
    return registry
