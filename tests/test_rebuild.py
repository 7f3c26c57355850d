import pytest
import yaml

from buildboot.config import RebuildConfig, Settings
from buildboot.core import (
    BuildContext,
    PreconditionError,
    SubprocessFailure,
    TaskInvocation,
    TaskRegistry,
    build_pipeline,
)
from buildboot.tasks import rebuild as rebuild_module
from buildboot.tasks.rebuild import render_precompile_module

CLONED_DESCRIPTOR = """\
declare: defproject
project: buildboot
version: 2.0.0
dependencies:
  - [pyyaml, '6.0']
url: https://example.org/buildboot
"""


@pytest.fixture
def rebuild_settings(tmp_path):
    return Settings(
        work_dir=str(tmp_path / ".boot"),
        require_tasks=["my.tasks", "other.tasks"],
        uberjar_exclusions=["^cljs/"],
        rebuild=RebuildConfig(repository="git@example.org:buildboot.git"),
    )


@pytest.fixture
def rebuild_ctx(rebuild_settings):
    registry = TaskRegistry()
    registry.load_module("buildboot.tasks.rebuild")
    ctx = BuildContext.from_settings(rebuild_settings, registry)
    ctx["dependencies"] = [["rich", "13.0"]]
    return ctx


@pytest.fixture
def fake_git_and_make(recorder, monkeypatch):
    def clone(cmd, cwd):
        target = cmd[-1]
        with open(f"{target}/project.yaml", "w", encoding="utf-8") as f:
            f.write(CLONED_DESCRIPTOR)

    def make(cmd, cwd):
        (cwd / "boot").write_text("#!/bin/sh\necho built\n", encoding="utf-8")

    recorder.on("git", clone)
    recorder.on("make", make)
    monkeypatch.setattr(rebuild_module, "launch", recorder)
    return recorder


def test_rebuild_clones_merges_builds_and_copies(rebuild_ctx, fake_git_and_make, tmp_path):
    outfile = tmp_path / "out" / "boot"
    outfile.parent.mkdir()

    target = rebuild_module.rebuild(rebuild_ctx, str(outfile))

    project_dir = (tmp_path / ".boot" / "rebuild").resolve()
    (clone_cmd, clone_dir), (make_cmd, make_dir) = fake_git_and_make.calls
    assert clone_cmd == ["git", "clone", "git@example.org:buildboot.git", str(project_dir)]
    assert clone_dir is None
    assert make_cmd == ["make", "boot"]
    assert make_dir == project_dir

    descriptor = yaml.safe_load((project_dir / "project.yaml").read_text(encoding="utf-8"))
    assert descriptor["dependencies"] == [["pyyaml", "6.0"], ["rich", "13.0"]]
    assert descriptor["uberjar-exclusions"] == ["^cljs/"]
    assert descriptor["url"] == "https://example.org/buildboot"

    precompiled = (project_dir / "buildboot" / "_precompiled.py").read_text(encoding="utf-8")
    assert "import my.tasks" in precompiled
    assert "import other.tasks" in precompiled

    assert target == outfile
    assert outfile.read_text(encoding="utf-8").endswith("echo built\n")


def test_rebuild_defaults_outfile_to_artifact_name(
    rebuild_ctx, fake_git_and_make, tmp_path, monkeypatch
):
    monkeypatch.chdir(tmp_path)

    target = rebuild_module.rebuild(rebuild_ctx)

    assert str(target) == "boot"
    assert (tmp_path / "boot").exists()


def test_failed_clone_aborts_before_build(rebuild_ctx, recorder, monkeypatch):
    recorder.on("git", status=128)
    monkeypatch.setattr(rebuild_module, "launch", recorder)

    with pytest.raises(SubprocessFailure) as excinfo:
        rebuild_module.rebuild(rebuild_ctx, "boot")

    assert excinfo.value.exit_status == 128
    assert excinfo.value.task_id == "rebuild-boot"
    assert [cmd[0] for cmd, _ in recorder.calls] == ["git"]


def test_failed_build_raises(rebuild_ctx, fake_git_and_make):
    fake_git_and_make.on("make", status=2)

    with pytest.raises(SubprocessFailure):
        rebuild_module.rebuild(rebuild_ctx, "boot")


def test_missing_repository_fails_before_spawning(rebuild_ctx, recorder, monkeypatch):
    rebuild_ctx.settings.rebuild.repository = ""
    monkeypatch.setattr(rebuild_module, "launch", recorder)

    with pytest.raises(PreconditionError):
        rebuild_module.rebuild(rebuild_ctx)

    assert recorder.calls == []


def test_rebuild_task_continues_pipeline(rebuild_ctx, fake_git_and_make, tmp_path):
    reached = []
    outfile = tmp_path / "boot-exe"

    handler = build_pipeline(
        rebuild_ctx.tasks, [TaskInvocation("rebuild-boot", (str(outfile),))], rebuild_ctx
    )
    handler_with_tail = rebuild_module.rebuild_boot(rebuild_ctx, str(outfile))(
        lambda ctx: reached.append(ctx) or ctx
    )

    handler(rebuild_ctx)
    handler_with_tail(rebuild_ctx)

    assert outfile.exists()
    assert reached == [rebuild_ctx]


def test_precompile_module_lists_each_module_once():
    source = render_precompile_module(["a.tasks", "b.tasks", "a.tasks"])

    assert source.count("import a.tasks") == 1
    assert "PRECOMPILED_TASKS = ['a.tasks', 'b.tasks']" in source
