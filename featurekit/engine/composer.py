"""Composition engine: runs the stages of ordered features.

This module is intentionally app-agnostic and must not import `polyscaffold.*`.
Dependency resolution, shell execution, template rendering and file editing
are collaborators injected by the caller.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Protocol

from featurekit.activation import AnswerMap, evaluate, normalize_answers
from featurekit.errors import FeatureGraphError
from featurekit.feature_registry import FeatureRegistry
from featurekit.feature_types import (
    DependencyRequest,
    EditFn,
    Feature,
    FileEdit,
    ScriptStep,
    Stage,
    TemplateInstruction,
    fill_placeholders,
)
from featurekit.graph import order_features

StageStatus = Literal["executed", "skipped"]


class ScriptRunner(Protocol):
    def run(self, command: str, *, cwd: str, logger: logging.Logger) -> str:
        """Run `command` in `cwd` and return its stdout; raise ScriptExecutionError on failure."""


class TemplateRenderer(Protocol):
    def render(
        self,
        instruction: TemplateInstruction,
        *,
        project_dir: str,
        context: Mapping[str, Any],
    ) -> list[str]:
        """Render one template instruction and return the written paths."""


class FileEditor(Protocol):
    def apply_edit(self, path: str, edit_fn: EditFn, config: Mapping[str, Any]) -> None:
        ...


class DependencySink(Protocol):
    def add_all(self, requests: Sequence[DependencyRequest]) -> Any:
        ...


class PackageManager(Protocol):
    def refresh(self, project_dir: str, *, logger: logging.Logger) -> None:
        ...


@dataclass
class CompositionContext:
    project_name: str
    project_dir: str
    logger: logging.Logger
    enabled_features: tuple[str, ...]
    answers: AnswerMap
    stages: list[dict[str, Any]] = field(default_factory=list)

    def script_args(self) -> dict[str, Any]:
        return {
            "projectName": self.project_name,
            "projectDir": self.project_dir,
            "enabledFeatures": list(self.enabled_features),
            "allAnswers": dict(self.answers),
        }


@dataclass(frozen=True)
class PlannedStage:
    feature_id: str
    stage_name: str
    active: bool
    condition: dict[str, Any] | None = None


@dataclass(frozen=True)
class CompositionResult:
    features: tuple[str, ...]
    executed: tuple[tuple[str, str], ...]
    skipped: tuple[tuple[str, str], ...]
    records: tuple[dict[str, Any], ...] = ()


class StageRecorder(Protocol):
    def on_stage_start(self, ctx: CompositionContext, feature: Feature, stage: Stage) -> None:
        ...

    def on_stage_skipped(self, ctx: CompositionContext, feature: Feature, stage: Stage) -> None:
        ...

    def on_stage_end(self, ctx: CompositionContext, record: dict[str, Any]) -> None:
        ...

    def on_stage_error(
        self, ctx: CompositionContext, feature: Feature, stage: Stage, exc: Exception
    ) -> None:
        ...


class DefaultStageRecorder:
    def on_stage_start(self, ctx: CompositionContext, feature: Feature, stage: Stage) -> None:
        tokens = [
            f"dependencies={len(stage.dependencies)}",
            f"scripts={len(stage.scripts)}",
            f"templates={len(stage.templates)}",
            f"edits={len(stage.edits)}",
        ]
        ctx.logger.info("Stage: %s/%s (%s)", feature.id, stage.name, ", ".join(tokens))

    def on_stage_skipped(self, ctx: CompositionContext, feature: Feature, stage: Stage) -> None:
        ctx.logger.info("Skipping stage %s/%s: activation condition not met", feature.id, stage.name)
        if stage.activated_by is not None:
            ctx.logger.debug(
                "Stage activation debug: condition=%s",
                json.dumps(stage.activated_by.to_dict(), ensure_ascii=False, default=repr),
            )
            ctx.logger.debug(
                "Stage activation debug: answers=%s",
                json.dumps(dict(ctx.answers), ensure_ascii=False, default=repr),
            )

    def on_stage_end(self, ctx: CompositionContext, record: dict[str, Any]) -> None:
        ctx.stages.append(record)
        if record.get("status") == "executed":
            ctx.logger.info("Completed stage %s", record.get("path", "<unknown>"))

    def on_stage_error(
        self, ctx: CompositionContext, feature: Feature, stage: Stage, exc: Exception
    ) -> None:
        ctx.logger.error("Stage failed: %s/%s (%s)", feature.id, stage.name, exc)


class NullStageRecorder:
    def on_stage_start(self, ctx: CompositionContext, feature: Feature, stage: Stage) -> None:
        return

    def on_stage_skipped(self, ctx: CompositionContext, feature: Feature, stage: Stage) -> None:
        return

    def on_stage_end(self, ctx: CompositionContext, record: dict[str, Any]) -> None:
        ctx.stages.append(record)

    def on_stage_error(
        self, ctx: CompositionContext, feature: Feature, stage: Stage, exc: Exception
    ) -> None:
        return


class CompositionEngine:
    def __init__(
        self,
        *,
        registry: FeatureRegistry,
        project_dir: str,
        script_runner: ScriptRunner,
        template_renderer: TemplateRenderer,
        file_editor: FileEditor,
        dependency_sink: DependencySink | None = None,
        package_manager: PackageManager | None = None,
        project_name: str | None = None,
        recorder: StageRecorder | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if not isinstance(project_dir, str) or not project_dir.strip():
            raise ValueError("project_dir must be a non-empty string")
        self._registry = registry
        self._project_dir = os.path.abspath(project_dir)
        self._project_name = project_name or os.path.basename(self._project_dir)
        self._scripts = script_runner
        self._templates = template_renderer
        self._editor = file_editor
        self._dependencies = dependency_sink
        self._package_manager = package_manager
        self._recorder = recorder or DefaultStageRecorder()
        self._logger = logger or logging.getLogger(__name__)
        self._validate_recorder(self._recorder)

    @property
    def project_dir(self) -> str:
        return self._project_dir

    def plan(
        self, selected_ids: Sequence[str], answers: Mapping[str, Any] | None = None
    ) -> tuple[PlannedStage, ...]:
        """Resolve order and activation without touching the filesystem."""

        normalized = normalize_answers(answers)
        planned: list[PlannedStage] = []
        for feature_id in order_features(self._registry, selected_ids):
            feature = self._registry.get(feature_id)
            for stage in feature.stages:
                planned.append(
                    PlannedStage(
                        feature_id=feature.id,
                        stage_name=stage.name,
                        active=self._is_active(stage, normalized, feature.id),
                        condition=stage.activated_by.to_dict() if stage.activated_by else None,
                    )
                )
        return tuple(planned)

    def run(
        self,
        selected_ids: Sequence[str],
        answers: Mapping[str, Any] | None = None,
        feature_configurations: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> CompositionResult:
        normalized = normalize_answers(answers)
        # graph errors surface here, before any stage mutates anything
        ordered = order_features(self._registry, selected_ids)
        features = [self._registry.get(feature_id) for feature_id in ordered]

        ctx = CompositionContext(
            project_name=self._project_name,
            project_dir=self._project_dir,
            logger=self._logger,
            enabled_features=ordered,
            answers=normalized,
        )
        self._logger.info(
            "Composing project %s in %s (features: %s)",
            ctx.project_name,
            ctx.project_dir,
            ", ".join(ordered) or "<none>",
        )

        configs = feature_configurations or {}
        executed: list[tuple[str, str]] = []
        skipped: list[tuple[str, str]] = []

        for feature in features:
            feature_config = dict(configs.get(feature.id) or {})
            self._logger.info("Feature: %s (%s)", feature.id, feature.name)
            if not feature.stages:
                self._logger.warning("No stages defined for feature: %s", feature.id)
                continue

            for stage in feature.stages:
                if not self._is_active(stage, normalized, feature.id):
                    self._recorder.on_stage_skipped(ctx, feature, stage)
                    self._recorder.on_stage_end(
                        ctx,
                        {"path": f"{feature.id}/{stage.name}", "status": "skipped"},
                    )
                    skipped.append((feature.id, stage.name))
                    continue

                self._run_stage(ctx, feature, stage, feature_config)
                executed.append((feature.id, stage.name))

        self._logger.info(
            "Composition complete: %d stage(s) executed, %d skipped", len(executed), len(skipped)
        )
        return CompositionResult(
            features=ordered,
            executed=tuple(executed),
            skipped=tuple(skipped),
            records=tuple(ctx.stages),
        )

    def _is_active(self, stage: Stage, answers: AnswerMap, feature_id: str) -> bool:
        if stage.activated_by is None:
            return True
        return evaluate(stage.activated_by, answers, feature_id)

    def _run_stage(
        self,
        ctx: CompositionContext,
        feature: Feature,
        stage: Stage,
        feature_config: dict[str, Any],
    ) -> None:
        path = f"{feature.id}/{stage.name}"
        self._recorder.on_stage_start(ctx, feature, stage)
        try:
            dependency_count = self._run_dependencies(ctx, stage.dependencies, feature_config)
            outputs = [self._run_script(ctx, step, feature_config) for step in stage.scripts]
            written: list[str] = []
            for instruction in stage.templates:
                written.extend(self._render_template(ctx, instruction, feature_config))
            edited = [self._apply_edits(ctx, edit, feature_config) for edit in stage.edits]
        except FeatureGraphError:
            raise
        except Exception as exc:
            self._attach_stage_error(exc, feature_id=feature.id, stage_name=stage.name, path=path)
            self._recorder.on_stage_error(ctx, feature, stage, exc)
            raise

        self._recorder.on_stage_end(
            ctx,
            {
                "path": path,
                "status": "executed",
                "dependencies": dependency_count,
                "scripts": len(outputs),
                "templates": written,
                "edits": [p for p in edited if p],
            },
        )

    def _run_dependencies(
        self,
        ctx: CompositionContext,
        requests: tuple[DependencyRequest, ...],
        feature_config: Mapping[str, Any],
    ) -> int:
        if not requests:
            return 0
        if self._dependencies is None:
            raise RuntimeError("Stage declares dependencies but no dependency sink is configured")

        expanded: list[DependencyRequest] = []
        for request in requests:
            expanded.extend(request.expand(feature_config))
        ctx.logger.info(
            "Installing %d dependency entries (%d packages)", len(requests), len(expanded)
        )
        self._dependencies.add_all(expanded)

        if self._package_manager is not None:
            try:
                self._package_manager.refresh(ctx.project_dir, logger=ctx.logger)
            except (OSError, RuntimeError) as exc:
                # manifests are already written; a failed install only delays availability
                ctx.logger.warning("Package manager refresh failed but continuing: %s", exc)
        return len(expanded)

    def _run_script(
        self, ctx: CompositionContext, step: ScriptStep, feature_config: Mapping[str, Any]
    ) -> str:
        command = step.render(ctx.script_args(), feature_config)
        cwd = ctx.project_dir
        if step.directory:
            cwd = os.path.normpath(os.path.join(ctx.project_dir, step.directory))
            if not os.path.isdir(cwd):
                os.makedirs(cwd, exist_ok=True)
                ctx.logger.debug("Created directory %s", cwd)
        ctx.logger.info("Running script: %s (cwd=%s)", command, cwd)
        output = self._scripts.run(command, cwd=cwd, logger=ctx.logger)
        ctx.logger.info("Script completed: %s", command)
        return output

    def _render_template(
        self,
        ctx: CompositionContext,
        instruction: TemplateInstruction,
        feature_config: Mapping[str, Any],
    ) -> list[str]:
        destination = fill_placeholders(instruction.destination, feature_config)
        if destination != instruction.destination:
            instruction = replace(instruction, destination=destination)
        context: dict[str, Any] = dict(instruction.context)
        context.update(ctx.script_args())
        context.update(feature_config)
        written = self._templates.render(instruction, project_dir=ctx.project_dir, context=context)
        for path in written:
            ctx.logger.info("Template written: %s -> %s", instruction.source, path)
        if not written:
            ctx.logger.warning("No templates found matching: %s", instruction.source)
        return written

    def _apply_edits(
        self, ctx: CompositionContext, edit: FileEdit, feature_config: Mapping[str, Any]
    ) -> str | None:
        path = os.path.join(ctx.project_dir, edit.path)
        if not os.path.exists(path):
            ctx.logger.debug("Edit target missing, skipping: %s", path)
            return None
        for fn in edit.edits:
            self._editor.apply_edit(path, fn, feature_config)
            ctx.logger.info("Edit applied: %s", path)
        return path

    def _validate_recorder(self, recorder: StageRecorder) -> None:
        required = ("on_stage_start", "on_stage_skipped", "on_stage_end", "on_stage_error")
        for name in required:
            method = getattr(recorder, name, None)
            if method is None or not callable(method):
                raise TypeError(f"Stage recorder missing required method: {name}")

    def _attach_stage_error(
        self, exc: Exception, *, feature_id: str, stage_name: str, path: str
    ) -> None:
        for attr, value in (
            ("feature_id", feature_id),
            ("stage_name", stage_name),
            ("stage_path", path),
        ):
            if getattr(exc, attr, None) is None:
                try:
                    setattr(exc, attr, value)
                except AttributeError:
                    pass
