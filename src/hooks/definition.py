from functions import logger_hooks

from .interface import Hook
from .types import HookContext, HookResult


class DefinitionHook(Hook):
    """Runs the setup/cleanup steps declared in a playground definition inside its endpoints"""

    def __init__(self, playground):
        self.playground = playground

    @property
    def name(self) -> str:
        return f"{self.playground.name}:definition"

    def _run_steps(self, context: HookContext, steps) -> HookResult:
        result = HookResult(self.name, context.stage)
        if context.runtime is None:
            logger_hooks.warning(f"No container runtime available, skipping {len(steps)} step(s) of {self.name}")
            result.returncode = 1
            return result

        for step in steps:
            return_code, output = context.runtime.exec(step.endpoint, step.command)
            result.output.extend(line for line in output.splitlines() if line.strip() != "")
            if return_code != 0:
                logger_hooks.warning(f"{step.endpoint}: '{step.command}' exited with {return_code}")
                result.returncode = return_code
            else:
                logger_hooks.debug(f"{step.endpoint}: '{step.command}' done")
        return result

    def pre_setup(self, context):
        if not self.playground.setup_steps:
            return super().pre_setup(context)
        logger_hooks.info(f"Running playground-specific setup for {self.playground.name}...")
        return self._run_steps(context, self.playground.setup_steps)

    def cleanup(self, context):
        if not self.playground.cleanup_steps:
            return super().cleanup(context)
        logger_hooks.info(f"Running playground-specific cleanup for {self.playground.name}...")
        return self._run_steps(context, self.playground.cleanup_steps)
