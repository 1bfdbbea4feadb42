from .definition import DefinitionHook
from .interface import CleanupHook, Hook, PostSetupHook, PreSetupHook
from .manager import HookRunner
from .script import ScriptHook
from .types import HookContext, HookResult, HookStage
