"""
Tests for the hook system

- HookRunner discovery order and failure isolation
- ScriptHook invocation contract (<script> <stage> <bridge>)
- DefinitionHook running setup/cleanup steps inside endpoints
"""

import os
import stat
from dataclasses import replace

import pytest

from hooks import DefinitionHook, Hook, HookContext, HookResult, HookRunner, HookStage, PostSetupHook, ScriptHook
from playground import DEFAULT_PLAYGROUND


def _script(directory, name, body, executable=True):
    path = os.path.join(directory, name)
    with open(path, "w") as f:
        f.write("#!/bin/sh\n" + body + "\n")
    if executable:
        os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def hooked_playground(tmp_path):
    hooks_dir = tmp_path / "hooks.d"
    hooks_dir.mkdir()
    _script(str(hooks_dir), "20-second.sh", 'echo "second $1 $2"')
    _script(str(hooks_dir), "10-first.sh", 'echo "first $1 $2"')
    _script(str(hooks_dir), "15-fails.sh", 'echo "broken"; exit 3')
    _script(str(hooks_dir), "30-not-executable.sh", "echo never", executable=False)
    _script(str(hooks_dir), ".hidden.sh", "echo hidden")
    return replace(DEFAULT_PLAYGROUND, name="hooked", path=str(tmp_path))


class RecordingHook(PostSetupHook):
    def __init__(self):
        self.contexts = []

    @property
    def name(self):
        return "recording"

    def post_setup(self, context):
        self.contexts.append(context)
        return HookResult(self.name, context.stage)


class ExplodingHook(Hook):
    @property
    def name(self):
        return "exploding"

    def pre_setup(self, context):
        raise RuntimeError("boom")


class TestHookRunner:
    def test_discover_order(self, hooked_playground):
        hooks = HookRunner().discover(hooked_playground)
        assert [hook.name for hook in hooks] == ["10-first.sh", "15-fails.sh", "20-second.sh"]
        assert all(isinstance(hook, ScriptHook) for hook in hooks)

    def test_discover_definition_steps_first(self, registry, tmp_path):
        playground = replace(registry.load("steps"), path=str(tmp_path))
        _script(str(tmp_path), "ignored.sh", "true")
        os.mkdir(tmp_path / "hooks.d")
        _script(str(tmp_path / "hooks.d"), "50-post.sh", "true")

        hooks = HookRunner().discover(playground)
        assert [hook.name for hook in hooks] == ["steps:definition", "50-post.sh"]
        assert isinstance(hooks[0], DefinitionHook)

    def test_discover_nothing(self, registry):
        assert HookRunner().discover(DEFAULT_PLAYGROUND) == []
        assert HookRunner().discover(registry.load("basic")) == []

    def test_run_scripts(self, hooked_playground):
        results = HookRunner().run(HookStage.POST, "br-test", hooked_playground)

        assert [result.hook for result in results] == ["10-first.sh", "15-fails.sh", "20-second.sh"]
        assert results[0].output == ["first post br-test"]
        assert results[2].output == ["second post br-test"]
        assert results[1].returncode == 3
        assert not results[1].ok
        assert results[2].ok

    def test_run_failure_is_logged(self, hooked_playground, caplog):
        HookRunner().run(HookStage.CLEANUP, "br-test", hooked_playground)
        assert "Hook '15-fails.sh' exited with 3 at stage cleanup" in caplog.text

    def test_run_skips_hooks_without_stage(self):
        hook = RecordingHook()
        runner = HookRunner()

        assert runner.run(HookStage.PRE, "br-lab", DEFAULT_PLAYGROUND, [hook]) == []
        results = runner.run(HookStage.POST, "br-lab", DEFAULT_PLAYGROUND, [hook])

        assert len(results) == 1
        assert hook.contexts[0].bridge == "br-lab"
        assert hook.contexts[0].playground is DEFAULT_PLAYGROUND

    def test_run_exception_is_contained(self):
        results = HookRunner().run(HookStage.PRE, "br-lab", DEFAULT_PLAYGROUND, [ExplodingHook(), Hook()])

        assert results[0].returncode == -1
        assert results[0].output == ["boom"]
        assert results[1].ok

    def test_run_no_hooks(self):
        assert HookRunner().run(HookStage.PRE, "br-lab", DEFAULT_PLAYGROUND) == []


class TestDefinitionHook:
    def test_pre_setup(self, registry, runtime):
        runtime.exec_results["false"] = (1, "")
        runtime.exec_results["ip route add 10.8.0.0/24 via 10.9.0.254"] = (0, "done\n\n")
        hook = DefinitionHook(registry.load("steps"))
        context = HookContext(HookStage.PRE, "br-lab", hook.playground, runtime)

        result = hook.pre_setup(context)

        assert runtime.executed == [
            ("s1", "ip route add 10.8.0.0/24 via 10.9.0.254"),
            ("s2", "false"),
        ]
        assert result.returncode == 1
        assert result.output == ["done"]

    def test_cleanup(self, registry, runtime):
        hook = DefinitionHook(registry.load("steps"))
        result = hook.cleanup(HookContext(HookStage.CLEANUP, "br-lab", hook.playground, runtime))

        assert runtime.executed == [("s1", "ip route del 10.8.0.0/24")]
        assert result.ok

    def test_post_setup_is_noop(self, registry, runtime):
        hook = DefinitionHook(registry.load("steps"))
        result = hook.post_setup(HookContext(HookStage.POST, "br-lab", hook.playground, runtime))

        assert result.ok
        assert runtime.executed == []

    def test_without_runtime(self, registry):
        hook = DefinitionHook(registry.load("steps"))
        result = hook.pre_setup(HookContext(HookStage.PRE, "br-lab", hook.playground))
        assert not result.ok
