"""Engine primitives for running ordered feature stages."""

from featurekit.engine.composer import (
    CompositionContext,
    CompositionEngine,
    CompositionResult,
    DefaultStageRecorder,
    DependencySink,
    FileEditor,
    NullStageRecorder,
    PackageManager,
    PlannedStage,
    ScriptRunner,
    StageRecorder,
    TemplateRenderer,
)

__all__ = [
    "CompositionContext",
    "CompositionEngine",
    "CompositionResult",
    "DefaultStageRecorder",
    "DependencySink",
    "FileEditor",
    "NullStageRecorder",
    "PackageManager",
    "PlannedStage",
    "ScriptRunner",
    "StageRecorder",
    "TemplateRenderer",
]
