from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from featurekit.activation import normalize_answers
from featurekit.engine.composer import (
    CompositionEngine,
    CompositionResult,
    FileEditor,
    PackageManager,
    PlannedStage,
    ScriptRunner,
    TemplateRenderer,
)
from featurekit.feature_registry import FeatureRegistry
from featurekit.graph import order_features, select_features
from polyscaffold.collaborators import FileEditor as DefaultFileEditor
from polyscaffold.collaborators import Jinja2TemplateRenderer, PnpmRefresher, SubprocessScriptRunner
from polyscaffold.dependencies.resolver import DependencyResolver
from polyscaffold.dependencies.settings import SettingsStore
from polyscaffold.features import BASE_FEATURES, get_feature_registry
from polyscaffold.foundation.config_io import load_yaml_mapping
from polyscaffold.foundation.logging_utils import close_logger, generate_run_id, open_run_logger


@dataclass(frozen=True)
class ScaffoldOutcome:
    run_id: str
    project_dir: str
    features: tuple[str, ...]
    plan: tuple[PlannedStage, ...] = ()
    result: CompositionResult | None = None
    log_file: str | None = None
    dry_run: bool = False


@dataclass
class Collaborators:
    script_runner: ScriptRunner = field(default_factory=SubprocessScriptRunner)
    template_renderer: TemplateRenderer = field(default_factory=Jinja2TemplateRenderer)
    file_editor: FileEditor = field(default_factory=DefaultFileEditor)
    package_manager: PackageManager | None = field(default_factory=PnpmRefresher)


def load_answers(path: str) -> dict[str, Any]:
    """Answers file: a YAML mapping of question id -> value."""
    return normalize_answers(load_yaml_mapping(path))


def feature_configurations(
    registry: FeatureRegistry, feature_ids: Sequence[str], answers: Mapping[str, Any]
) -> dict[str, dict[str, Any]]:
    """Per-feature configuration: each declared question's answer, else its `defaultValue`."""

    configs: dict[str, dict[str, Any]] = {}
    for feature_id in feature_ids:
        values: dict[str, Any] = {}
        for question in registry.get(feature_id).configuration:
            question_id = question.get("id")
            if not isinstance(question_id, str):
                continue
            if question_id in answers:
                values[question_id] = answers[question_id]
            elif "defaultValue" in question:
                values[question_id] = question["defaultValue"]
        configs[feature_id] = values
    return configs


def answers_with_defaults(
    answers: Mapping[str, Any], configs: Mapping[str, Mapping[str, Any]]
) -> dict[str, Any]:
    """Unanswered configuration questions take their defaults for stage activation."""

    merged = dict(answers)
    for values in configs.values():
        for question_id, value in values.items():
            merged.setdefault(question_id, value)
    return normalize_answers(merged)


def choose_features(
    registry: FeatureRegistry, requested: Sequence[str], answers: Mapping[str, Any]
) -> tuple[str, ...]:
    """Explicit ids win; otherwise features are picked from the answers."""

    if requested:
        return order_features(registry, [*BASE_FEATURES, *requested])
    return select_features(registry, answers, always=BASE_FEATURES)


def build_engine(
    project_dir: str,
    *,
    project_name: str,
    registry: FeatureRegistry,
    resolver: DependencyResolver,
    collaborators: Collaborators,
    logger: logging.Logger,
) -> CompositionEngine:
    return CompositionEngine(
        registry=registry,
        project_dir=project_dir,
        project_name=project_name,
        script_runner=collaborators.script_runner,
        template_renderer=collaborators.template_renderer,
        file_editor=collaborators.file_editor,
        dependency_sink=resolver,
        package_manager=collaborators.package_manager,
        logger=logger,
    )


def run_scaffold(
    project_name: str,
    *,
    project_dir: str | None = None,
    features: Sequence[str] = (),
    answers: Mapping[str, Any] | None = None,
    dry_run: bool = False,
    run_id: str | None = None,
    registry: FeatureRegistry | None = None,
    collaborators: Collaborators | None = None,
    environ: Mapping[str, str] | None = None,
) -> ScaffoldOutcome:
    if not isinstance(project_name, str) or not project_name.strip():
        raise ValueError("project_name must be a non-empty string")

    run_id = run_id or generate_run_id()
    target = os.path.abspath(project_dir or os.path.join(os.getcwd(), project_name))
    logger, log_file = open_run_logger(run_id, environ)
    phase = "init"

    try:
        phase = "select"
        registry = registry or get_feature_registry()
        normalized = normalize_answers(answers)
        ordered = choose_features(registry, features, normalized)
        logger.info("Selected features: %s", ", ".join(ordered))
        configs = feature_configurations(registry, ordered, normalized)
        effective = answers_with_defaults(normalized, configs)

        phase = "settings"
        settings = SettingsStore(target).load()
        resolver = DependencyResolver.for_project(target, settings, logger=logger)
        engine = build_engine(
            target,
            project_name=project_name,
            registry=registry,
            resolver=resolver,
            collaborators=collaborators or Collaborators(),
            logger=logger,
        )

        if dry_run:
            phase = "plan"
            plan = engine.plan(ordered, effective)
            for planned in plan:
                logger.info(
                    "Plan: %s/%s (%s)",
                    planned.feature_id,
                    planned.stage_name,
                    "run" if planned.active else "skip",
                )
            return ScaffoldOutcome(
                run_id=run_id,
                project_dir=target,
                features=ordered,
                plan=plan,
                log_file=log_file,
                dry_run=True,
            )

        phase = "compose"
        os.makedirs(target, exist_ok=True)
        result = engine.run(
            ordered,
            effective,
            configs,
        )
        logger.info("Project %s created at %s", project_name, target)
        if log_file:
            logger.info("Operational log stored at %s", log_file)
        return ScaffoldOutcome(
            run_id=run_id,
            project_dir=target,
            features=ordered,
            result=result,
            log_file=log_file,
        )
    except Exception as exc:
        stage_path = getattr(exc, "stage_path", None)
        if stage_path:
            logger.error("Scaffold failed in stage %s during phase %s: %s", stage_path, phase, exc)
        else:
            logger.error("Scaffold failed during phase %s: %s", phase, exc)
        logger.debug("Failure details", exc_info=True)
        raise
    finally:
        close_logger(logger)


__all__ = [
    "Collaborators",
    "ScaffoldOutcome",
    "answers_with_defaults",
    "build_engine",
    "choose_features",
    "feature_configurations",
    "load_answers",
    "run_scaffold",
]
