import pytest
import yaml

from buildboot.config import DelegateConfig, ProjectConfig, Settings
from buildboot.core import (
    BuildContext,
    IOFailure,
    PreconditionError,
    SubprocessFailure,
    TaskInvocation,
    TaskRegistry,
    build_pipeline,
)
from buildboot.tasks import delegate as delegate_module
from buildboot.tasks.delegate import descriptor_from_context
from tests.conftest import marker_task


@pytest.fixture
def delegate_ctx(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = Settings(
        work_dir=str(tmp_path / ".boot"),
        project=ProjectConfig(
            name="my-app",
            version="1.0.0",
            dependencies=[["org.clojure/clojure", "1.5.1"]],
            src_paths=["src", "resources"],
        ),
        delegate=DelegateConfig(
            command="lein",
            descriptor="project.yaml",
            options={"main": "my-app.core", "aot": ["my-app.core"]},
        ),
    )
    registry = TaskRegistry()
    registry.load_module("buildboot.tasks.delegate")
    ctx = BuildContext.from_settings(settings, registry)
    ctx.declare("trace", list)
    ctx["trace"] = []
    return ctx


@pytest.fixture
def exit_hooks(monkeypatch):
    hooks = []
    monkeypatch.setattr(delegate_module.atexit, "register", lambda fn, *args: hooks.append((fn, args)))
    return hooks


def _tail(ctx):
    ctx["trace"].append("after-delegate")
    return ctx


def test_delegate_writes_descriptor_and_runs_tool(
    delegate_ctx, recorder, monkeypatch, exit_hooks, tmp_path
):
    seen = {}

    def capture_descriptor(cmd, cwd):
        seen.update(yaml.safe_load((tmp_path / "project.yaml").read_text(encoding="utf-8")))

    recorder.on("lein", capture_descriptor)
    monkeypatch.setattr(delegate_module, "launch", recorder)

    handler = delegate_module.delegate(delegate_ctx, "test", "unit")(_tail)
    handler(delegate_ctx)

    assert recorder.calls == [(["lein", "test", "unit"], None)]
    assert list(seen)[:3] == ["declare", "project", "version"]
    assert seen["project"] == "my-app"
    assert seen["version"] == "1.0.0"
    assert seen["dependencies"] == [["org.clojure/clojure", "1.5.1"]]
    assert seen["source-paths"] == ["src", "resources"]
    assert seen["main"] == "my-app.core"
    assert delegate_ctx["trace"] == ["after-delegate"]


def test_descriptor_removal_is_scheduled_at_exit(delegate_ctx, recorder, monkeypatch, exit_hooks, tmp_path):
    monkeypatch.setattr(delegate_module, "launch", recorder)

    delegate_module.delegate(delegate_ctx)(_tail)(delegate_ctx)

    assert (tmp_path / "project.yaml").exists()
    [(fn, args)] = exit_hooks
    fn(*args)
    assert not (tmp_path / "project.yaml").exists()
    # Running the hook again is harmless
    fn(*args)


def test_existing_descriptor_fails_before_spawning(
    delegate_ctx, recorder, monkeypatch, exit_hooks, tmp_path
):
    existing = tmp_path / "project.yaml"
    existing.write_text("keep me\n", encoding="utf-8")
    monkeypatch.setattr(delegate_module, "launch", recorder)

    with pytest.raises(PreconditionError) as excinfo:
        delegate_module.delegate(delegate_ctx, "test")(_tail)(delegate_ctx)

    assert excinfo.value.task_id == "delegate"
    assert recorder.calls == []
    assert exit_hooks == []
    assert existing.read_text(encoding="utf-8") == "keep me\n"
    assert delegate_ctx["trace"] == []


def test_failed_tool_stops_pipeline(delegate_ctx, recorder, monkeypatch, exit_hooks):
    recorder.on("lein", status=1)
    monkeypatch.setattr(delegate_module, "launch", recorder)

    with pytest.raises(SubprocessFailure):
        delegate_module.delegate(delegate_ctx, "test")(_tail)(delegate_ctx)

    assert delegate_ctx["trace"] == []


def test_delegate_through_pipeline(delegate_ctx, recorder, monkeypatch, exit_hooks):
    monkeypatch.setattr(delegate_module, "launch", recorder)

    handler = build_pipeline(
        delegate_ctx.tasks, TaskInvocation.parse(["[delegate", "uberjar]"]), delegate_ctx
    )
    handler(delegate_ctx)

    assert recorder.calls[0][0] == ["lein", "uberjar"]


def test_descriptor_defaults_when_project_is_unnamed(settings):
    ctx = BuildContext(settings, dependencies=[], src_paths=["src"])

    descriptor = descriptor_from_context(ctx)

    assert descriptor.name == "boot-project"
    assert descriptor.version == "0.1.0-SNAPSHOT"
    assert descriptor.marker == "defproject"
    assert descriptor.entries == {"dependencies": [], "source-paths": ["src"]}


def test_existing_descriptor_fails_while_building_pipeline(
    delegate_ctx, recorder, monkeypatch, exit_hooks, tmp_path
):
    (tmp_path / "project.yaml").write_text("keep me\n", encoding="utf-8")
    monkeypatch.setattr(delegate_module, "launch", recorder)
    registry = delegate_ctx.tasks
    registry.register("build", marker_task("build"))

    with pytest.raises(PreconditionError):
        build_pipeline(registry, TaskInvocation.parse(["build", "delegate"]), delegate_ctx)

    assert delegate_ctx["trace"] == []
    assert recorder.calls == []


def test_partial_descriptor_is_still_removed_at_exit(
    delegate_ctx, recorder, monkeypatch, exit_hooks, tmp_path
):
    def failing_write(path, descriptor):
        path.write_text("declare: defpro", encoding="utf-8")
        raise IOFailure(None, "disk full")

    monkeypatch.setattr(delegate_module, "write_descriptor", failing_write)
    monkeypatch.setattr(delegate_module, "launch", recorder)

    with pytest.raises(IOFailure):
        delegate_module.delegate(delegate_ctx)(_tail)(delegate_ctx)

    assert recorder.calls == []
    [(fn, args)] = exit_hooks
    fn(*args)
    assert not (tmp_path / "project.yaml").exists()
