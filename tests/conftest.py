"""Shared fixtures for buildboot tests."""

from __future__ import annotations

import pytest

from buildboot.config import Settings, clear_settings_cache
from buildboot.core import BuildContext, TaskRegistry


class FakeHandle:
    """Stands in for SyncHandle when no real process should run."""

    def __init__(self, command, status=0):
        self.command = list(command)
        self.status = status

    def __call__(self):
        return self.status

    def check(self, task_id=None):
        from buildboot.core import SubprocessFailure

        if self.status != 0:
            raise SubprocessFailure(task_id, self.command, self.status)
        return self.status


class Recorder:
    """Fake launch() recording each command and the scoped shell dir."""

    def __init__(self):
        self.calls = []
        self.effects = {}
        self.statuses = {}

    def on(self, program, effect=None, status=0):
        if effect is not None:
            self.effects[program] = effect
        self.statuses[program] = status

    def __call__(self, command, *args, options=None):
        from buildboot.integrations.shell import current_shell_dir

        cmd = [str(command), *(str(a) for a in args)]
        self.calls.append((cmd, current_shell_dir()))
        effect = self.effects.get(cmd[0])
        if effect is not None:
            effect(cmd, current_shell_dir())
        return FakeHandle(cmd, self.statuses.get(cmd[0], 0))


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(work_dir=str(tmp_path / ".boot"))


@pytest.fixture
def registry() -> TaskRegistry:
    return TaskRegistry()


@pytest.fixture
def ctx(settings, registry) -> BuildContext:
    context = BuildContext(settings, tasks=registry)
    context.declare("trace", list)
    context["trace"] = []
    return context


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


def marker_task(name):
    """Factory appending before/after markers to ctx["trace"]."""

    def factory(ctx):
        def middleware(next_handler):
            def handler(ctx):
                ctx["trace"].append(f"{name}-before")
                ctx = next_handler(ctx)
                ctx["trace"].append(f"{name}-after")
                return ctx

            return handler

        return middleware

    factory.__doc__ = f"Marker task {name}."
    return factory
