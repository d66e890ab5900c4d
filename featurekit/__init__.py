"""Reusable feature-composition kernel (feature model, ordering, activation, engine).

This package is intentionally independent of `polyscaffold.*`. Dependency
resolution, shell execution, templating and file editing are collaborators
supplied by the consuming application.
"""

from featurekit.activation import (
    And,
    AnswerMap,
    Condition,
    Contains,
    Custom,
    Equals,
    IncludesValue,
    IsOneOf,
    Or,
    evaluate,
    normalize_answers,
)
from featurekit.config_namespace import ConfigNamespace
from featurekit.engine.composer import (
    CompositionContext,
    CompositionEngine,
    CompositionResult,
    DefaultStageRecorder,
    NullStageRecorder,
    PlannedStage,
    StageRecorder,
)
from featurekit.errors import (
    CircularDependencyError,
    FeatureGraphError,
    ScriptExecutionError,
    UnknownFeatureError,
)
from featurekit.feature_registry import FeatureRegistry
from featurekit.feature_types import (
    DependencyRequest,
    DependencyType,
    Feature,
    FileEdit,
    ScriptStep,
    Stage,
    TemplateInstruction,
    fill_placeholders,
)
from featurekit.graph import dependency_closure, order_features, select_features

__all__ = [
    "And",
    "AnswerMap",
    "CircularDependencyError",
    "CompositionContext",
    "CompositionEngine",
    "CompositionResult",
    "Condition",
    "ConfigNamespace",
    "Contains",
    "Custom",
    "DefaultStageRecorder",
    "DependencyRequest",
    "DependencyType",
    "Equals",
    "Feature",
    "FeatureGraphError",
    "FeatureRegistry",
    "FileEdit",
    "IncludesValue",
    "IsOneOf",
    "NullStageRecorder",
    "Or",
    "PlannedStage",
    "ScriptExecutionError",
    "ScriptStep",
    "Stage",
    "StageRecorder",
    "TemplateInstruction",
    "UnknownFeatureError",
    "dependency_closure",
    "evaluate",
    "fill_placeholders",
    "normalize_answers",
    "order_features",
    "select_features",
]
