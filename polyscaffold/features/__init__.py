"""Built-in feature catalog."""

from polyscaffold.features.registry import BASE_FEATURES, get_feature_registry

__all__ = ["BASE_FEATURES", "get_feature_registry"]
