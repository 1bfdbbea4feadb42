from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class HookStage(Enum):
    """Lifecycle stages; the value is passed to hook scripts as their first argument"""
    PRE = "pre"            # endpoints attached, before the playground is recorded
    POST = "post"          # playground recorded, before flows are applied
    CLEANUP = "cleanup"    # before endpoints are torn down


@dataclass
class HookContext:
    """Container for all hook execution data"""
    stage: HookStage
    bridge: str
    playground: Any                 # playground.Playground
    runtime: Any = None             # controller.ContainerRuntime, for hooks that run inside endpoints


@dataclass
class HookResult:
    """Hook execution result; returncode is only reported, never acted on"""
    hook: str
    stage: HookStage
    returncode: int = 0
    output: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0
