from abc import ABC, abstractmethod

from .types import HookContext, HookResult


class PreSetupHook(ABC):
    @abstractmethod
    def pre_setup(self, context: HookContext) -> HookResult:
        """Runs once every endpoint is attached and has its fixed port"""
        pass


class PostSetupHook(ABC):
    @abstractmethod
    def post_setup(self, context: HookContext) -> HookResult:
        """Runs after the active playground is recorded on the bridge"""
        pass


class CleanupHook(ABC):
    @abstractmethod
    def cleanup(self, context: HookContext) -> HookResult:
        """Runs before the playground's endpoints are removed"""
        pass


class Hook(PreSetupHook, PostSetupHook, CleanupHook):
    """Base class for hooks; every stage defaults to a no-op"""

    @property
    def name(self) -> str:
        return type(self).__name__

    def pre_setup(self, context: HookContext) -> HookResult:
        return HookResult(self.name, context.stage)

    def post_setup(self, context: HookContext) -> HookResult:
        return HookResult(self.name, context.stage)

    def cleanup(self, context: HookContext) -> HookResult:
        return HookResult(self.name, context.stage)
