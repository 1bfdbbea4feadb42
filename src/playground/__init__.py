from .registry import PlaygroundRegistry
from .state import BridgeStateStore
from .types import (
    DEFAULT_PLAYGROUND,
    Endpoint,
    EndpointStatus,
    LabPhase,
    LabState,
    NetworkConfig,
    Playground,
    SetupStep,
    VlanConfig,
)
