from abc import ABC, abstractmethod
from typing import Final

from functions import logger_ovslab


class SwitchController(ABC):
    """Control plane of the software switch: bridge, ports, annotations and flow table"""

    OVS: Final[str] = "ovs"

    @staticmethod
    def factory(mode, permissions=None):
        from .ovs import OvsSwitchController

        if mode == SwitchController.OVS:
            return OvsSwitchController(permissions)
        else:
            logger_ovslab.fatal(f"Expected switch controller to be 'ovs'. I got '{mode}'")
            return None

    @abstractmethod
    def exists(self, bridge: str) -> bool:
        pass

    @abstractmethod
    def list_bridges(self) -> list[str]:
        pass

    @abstractmethod
    def create(self, bridge: str, external_ids: dict | None = None) -> bool:
        """Create the bridge and write its initial annotations in one transaction"""
        pass

    @abstractmethod
    def delete(self, bridge: str) -> bool:
        pass

    @abstractmethod
    def set_property(self, bridge: str, column: str, value: str) -> bool:
        """Set one bridge column, e.g. column='external_ids:playground'"""
        pass

    @abstractmethod
    def set_protocols(self, bridge: str, protocols: list[str]) -> bool:
        pass

    @abstractmethod
    def get_external_id(self, bridge: str, key: str) -> str | None:
        """Read one annotation; a missing key is None, never an error"""
        pass

    @abstractmethod
    def flush_flows(self, bridge: str) -> bool:
        pass

    @abstractmethod
    def add_flow(self, bridge: str, rule: str) -> bool:
        pass

    @abstractmethod
    def dump_flows(self, bridge: str) -> list[str]:
        pass

    @abstractmethod
    def attach(self, bridge: str, endpoint: str, interface: str, cidr: str, gateway: str) -> bool:
        """Plug an endpoint into the bridge and configure its address"""
        pass

    @abstractmethod
    def detach(self, bridge: str, endpoint: str, interface: str) -> bool:
        pass

    @abstractmethod
    def find_port_by_endpoint(self, endpoint: str, interface: str) -> str | None:
        """Name of the switch interface created for an endpoint"""
        pass

    @abstractmethod
    def request_port(self, port_name: str, number: int) -> bool:
        pass

    @abstractmethod
    def get_port_number(self, port_name: str) -> int | None:
        pass

    @abstractmethod
    def set_port_vlan(self, port_name: str, tag: int | None = None, trunks: list[int] | None = None) -> bool:
        pass

    @abstractmethod
    def list_endpoints(self, bridge: str) -> list[str]:
        """Names of the endpoints currently attached to the bridge"""
        pass


class ContainerRuntime(ABC):
    """Creates and drives the containers standing in for lab hosts"""

    DOCKER: Final[str] = "docker"

    @staticmethod
    def factory(mode):
        from .docker import DockerRuntime

        if mode == ContainerRuntime.DOCKER:
            return DockerRuntime()
        else:
            logger_ovslab.fatal(f"Expected container runtime to be 'docker'. I got '{mode}'")
            return None

    @abstractmethod
    def create(self, name: str, image: str) -> bool:
        pass

    @abstractmethod
    def remove(self, name: str) -> bool:
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def is_running(self, name: str) -> bool:
        pass

    @abstractmethod
    def list(self, names: list[str] | None = None) -> list[dict]:
        """[{"name": ..., "status": ...}] for all containers, or only the given names"""
        pass

    @abstractmethod
    def exec(self, name: str, command: str) -> tuple[int, str]:
        pass
