import logging

import pytest

from featurekit.activation import Equals
from featurekit.engine.composer import CompositionEngine, NullStageRecorder
from featurekit.errors import ScriptExecutionError, UnknownFeatureError
from featurekit.feature_registry import FeatureRegistry
from featurekit.feature_types import (
    DependencyRequest,
    Feature,
    FileEdit,
    ScriptStep,
    Stage,
    TemplateInstruction,
)


class Recorder:
    def __init__(self):
        self.events = []


class FakeScripts:
    def __init__(self, events, fail_on=None):
        self.events = events
        self.fail_on = fail_on

    def run(self, command, *, cwd, logger):
        self.events.append(("script", command, cwd))
        if command == self.fail_on:
            raise ScriptExecutionError(command, directory=cwd, returncode=3)
        return "ok"


class FakeTemplates:
    def __init__(self, events):
        self.events = events

    def render(self, instruction, *, project_dir, context):
        self.events.append(("template", instruction.source, instruction.destination, dict(context)))
        return [f"{project_dir}/{instruction.destination}"]


class FakeEditor:
    def __init__(self, events):
        self.events = events

    def apply_edit(self, path, edit_fn, config):
        self.events.append(("edit", path))
        edit_fn(path, config)


class FakeSink:
    def __init__(self, events):
        self.events = events

    def add_all(self, requests):
        self.events.append(("deps", [(r.name, r.workspace, r.type) for r in requests]))


class FailingPackageManager:
    def refresh(self, project_dir, *, logger):
        raise RuntimeError("pnpm not installed")


def _noop_edit(path, config):
    return None


def _engine(tmp_path, features, events, **overrides):
    kwargs = dict(
        registry=FeatureRegistry.from_features(features),
        project_dir=str(tmp_path),
        project_name="demo",
        script_runner=FakeScripts(events),
        template_renderer=FakeTemplates(events),
        file_editor=FakeEditor(events),
        dependency_sink=FakeSink(events),
        recorder=NullStageRecorder(),
        logger=logging.getLogger("tests.engine"),
    )
    kwargs.update(overrides)
    return CompositionEngine(**kwargs)


def test_stage_work_runs_in_fixed_order_and_features_in_dependency_order(tmp_path):
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    events = []
    base = Feature("base", stages=(Stage("init", scripts=(ScriptStep("echo base"),)),))
    app = Feature(
        "app",
        depends_on=("base",),
        stages=(
            Stage(
                "setup",
                edits=(FileEdit("package.json", _noop_edit),),
                templates=(TemplateInstruction("tpl", "out"),),
                scripts=(ScriptStep("echo app"),),
                dependencies=(DependencyRequest(name="react", workspace="web"),),
            ),
        ),
    )

    result = _engine(tmp_path, [app, base], events).run(["app"])

    assert [e[0] for e in events] == ["script", "deps", "script", "template", "edit"]
    assert events[0][1] == "echo base"
    assert result.features == ("base", "app")
    assert result.executed == (("base", "init"), ("app", "setup"))


def test_inactive_stage_is_skipped_and_recorded(tmp_path):
    events = []
    feature = Feature(
        "devx",
        stages=(
            Stage("always", scripts=(ScriptStep("echo always"),)),
            Stage("hooks", activated_by=Equals("gitHooks", True), scripts=(ScriptStep("echo hooks"),)),
        ),
    )

    result = _engine(tmp_path, [feature], events).run(["devx"], {"gitHooks": False})

    assert [e[1] for e in events] == ["echo always"]
    assert result.skipped == (("devx", "hooks"),)
    assert {"path": "devx/hooks", "status": "skipped"} in result.records


def test_script_failure_aborts_and_names_the_stage(tmp_path):
    events = []
    features = [
        Feature("a", stages=(Stage("boom", scripts=(ScriptStep("exit 3"), ScriptStep("echo after"))),)),
        Feature("b", depends_on=("a",), stages=(Stage("later", scripts=(ScriptStep("echo b"),)),)),
    ]
    engine = _engine(tmp_path, features, events, script_runner=FakeScripts(events, fail_on="exit 3"))

    with pytest.raises(ScriptExecutionError) as excinfo:
        engine.run(["b"])

    err = excinfo.value
    assert err.returncode == 3
    assert err.feature_id == "a"
    assert err.stage_name == "boom"
    assert err.stage_path == "a/boom"
    assert str(err).endswith("[feature=a, stage=boom]")
    assert [e[1] for e in events] == ["exit 3"]


def test_graph_errors_surface_before_any_stage_runs(tmp_path):
    events = []
    features = [Feature("a", stages=(Stage("s", scripts=(ScriptStep("echo a"),)),))]

    with pytest.raises(UnknownFeatureError):
        _engine(tmp_path, features, events).run(["a", "missing"])
    assert events == []


def test_package_manager_failure_only_warns(tmp_path, caplog):
    events = []
    feature = Feature(
        "f",
        stages=(
            Stage("deps", dependencies=(DependencyRequest(name="react", workspace="web"),)),
            Stage("next", scripts=(ScriptStep("echo next"),)),
        ),
    )
    engine = _engine(tmp_path, [feature], events, package_manager=FailingPackageManager())

    with caplog.at_level(logging.WARNING, logger="tests.engine"):
        result = engine.run(["f"])

    assert result.executed == (("f", "deps"), ("f", "next"))
    assert "Package manager refresh failed but continuing: pnpm not installed" in caplog.text


def test_missing_edit_target_is_skipped(tmp_path):
    events = []
    feature = Feature("f", stages=(Stage("edit", edits=(FileEdit("web/index.css", _noop_edit),)),))

    result = _engine(tmp_path, [feature], events).run(["f"])

    assert events == []
    assert result.records[0]["edits"] == []


def test_placeholders_fill_workspace_command_and_destination(tmp_path):
    events = []
    feature = Feature(
        "client",
        stages=(
            Stage(
                "setup",
                dependencies=(DependencyRequest(name=("urql", "graphql"), workspace="{{clientWorkspace}}"),),
                scripts=(ScriptStep("codegen --endpoint {{graphqlEndpoint}}", directory="mobile"),),
                templates=(TemplateInstruction("client", "{{clientWorkspace}}", context={"clientType": "urql"}),),
            ),
        ),
    )
    config = {"clientWorkspace": "mobile", "graphqlEndpoint": "http://localhost:4000/graphql"}

    _engine(tmp_path, [feature], events).run(["client"], {}, {"client": config})

    assert events[0] == ("deps", [("urql", "mobile", "dependencies"), ("graphql", "mobile", "dependencies")])
    assert events[1] == ("script", "codegen --endpoint http://localhost:4000/graphql", str(tmp_path / "mobile"))
    assert (tmp_path / "mobile").is_dir()
    _kind, source, destination, context = events[2]
    assert (source, destination) == ("client", "mobile")
    assert context["clientType"] == "urql"
    assert context["projectName"] == "demo"
    assert context["clientWorkspace"] == "mobile"


def test_dependencies_without_sink_fail_the_stage(tmp_path):
    feature = Feature("f", stages=(Stage("deps", dependencies=(DependencyRequest(name="react", workspace="web"),)),))
    engine = _engine(tmp_path, [feature], [], dependency_sink=None)

    with pytest.raises(RuntimeError, match="no dependency sink") as excinfo:
        engine.run(["f"])
    assert excinfo.value.stage_path == "f/deps"


def test_plan_reports_activation_without_side_effects(tmp_path):
    events = []
    feature = Feature(
        "devx",
        stages=(
            Stage("core", scripts=(ScriptStep("echo core"),)),
            Stage("hooks", activated_by=Equals("gitHooks", True), scripts=(ScriptStep("echo hooks"),)),
        ),
    )

    plan = _engine(tmp_path, [feature], events).plan(["devx"], {})

    assert [(p.stage_name, p.active) for p in plan] == [("core", True), ("hooks", False)]
    assert plan[1].condition == {"type": "equals", "question_id": "gitHooks", "value": True}
    assert events == []


def test_recorder_must_implement_all_hooks(tmp_path):
    with pytest.raises(TypeError, match="missing required method: on_stage_start"):
        _engine(tmp_path, [Feature("f")], [], recorder=Recorder())
