from .interface import ContainerRuntime, SwitchController
