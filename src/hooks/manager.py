import os

from functions import logger_hooks

from .definition import DefinitionHook
from .interface import CleanupHook, Hook, PostSetupHook, PreSetupHook
from .script import ScriptHook
from .types import HookContext, HookResult, HookStage


class HookRunner:
    """Discovers a playground's hooks and runs them in order, never failing the caller"""

    def __init__(self, runtime=None):
        """
        Initialize the hook runner

        Args:
            runtime: ContainerRuntime handed to hooks that run commands inside endpoints
        """
        self.runtime = runtime
        self.logger = logger_hooks

    def discover(self, playground) -> list[Hook]:
        """
        Map a playground to its ordered list of hooks

        The definition's own setup/cleanup steps come first, then every
        executable file of hooks.d in lexical order.
        """
        hooks: list[Hook] = []
        if playground.setup_steps or playground.cleanup_steps:
            hooks.append(DefinitionHook(playground))

        directory = playground.hooks_dir
        if directory is None or not os.path.isdir(directory):
            return hooks

        for filename in sorted(os.listdir(directory)):
            filepath = os.path.join(directory, filename)
            if filename.startswith(".") or not os.path.isfile(filepath):
                continue
            if not os.access(filepath, os.X_OK):
                self.logger.debug(f"Skipping non-executable hook {filepath}")
                continue
            hooks.append(ScriptHook(filepath))
        return hooks

    def run(self, stage: HookStage, bridge: str, playground, hooks: list[Hook] | None = None) -> list[HookResult]:
        """
        Run every hook for one stage

        Args:
            stage: Lifecycle stage
            bridge: Bridge name passed to the hooks
            playground: Playground owning the hooks
            hooks: Pre-discovered hooks; discovered from the playground when None

        Returns:
            List of HookResult, one per hook that implements the stage
        """
        hooks = self.discover(playground) if hooks is None else hooks
        if not hooks:
            return []

        context = HookContext(stage=stage, bridge=bridge, playground=playground, runtime=self.runtime)
        results = []
        for hook in hooks:
            method = self._method_for(hook, stage)
            if method is None:
                continue

            try:
                self.logger.debug(f"Executing {stage.value} hook: {hook.name}")
                result = method(context)
            except Exception as e:
                self._handle_error(f"Hook '{hook.name}' failed at stage {stage.value}: {e}")
                results.append(HookResult(getattr(hook, "name", repr(hook)), stage, -1, [str(e)]))
                continue

            if not result.ok:
                self._handle_error(f"Hook '{hook.name}' exited with {result.returncode} at stage {stage.value}")
            results.append(result)

        return results

    @staticmethod
    def _method_for(hook, stage):
        if stage == HookStage.PRE and isinstance(hook, PreSetupHook):
            return hook.pre_setup
        if stage == HookStage.POST and isinstance(hook, PostSetupHook):
            return hook.post_setup
        if stage == HookStage.CLEANUP and isinstance(hook, CleanupHook):
            return hook.cleanup
        return None

    def _handle_error(self, message: str) -> None:
        self.logger.warning(message)
