import os

from functions import Functions, logger_hooks

from .interface import Hook
from .types import HookContext, HookResult


class ScriptHook(Hook):
    """
    An executable from the playground's hooks.d directory.

    Invoked as `<script> <stage> <bridge>` at every stage; the script decides
    which stages it cares about.
    """

    def __init__(self, path: str):
        self.path = path

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    def _run(self, context: HookContext) -> HookResult:
        return_code, output = Functions.run_command(logger_hooks, [self.path, context.stage.value, context.bridge],
                                                    log_output=True)
        return HookResult(self.name, context.stage, return_code, output)

    def pre_setup(self, context):
        return self._run(context)

    def post_setup(self, context):
        return self._run(context)

    def cleanup(self, context):
        return self._run(context)
