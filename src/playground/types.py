import ipaddress
import os
from dataclasses import dataclass, field, replace
from enum import Enum

from functions import Consts


class EndpointStatus(Enum):
    """Runtime status of one endpoint container"""
    ABSENT = "absent"
    CREATED = "created"      # container exists, not on the bridge
    ATTACHED = "attached"    # port added to the bridge
    RUNNING = "running"      # attached and fixed port assigned


class LabPhase(Enum):
    ABSENT = "absent"
    CREATED = "created"
    CONFIGURED = "configured"


@dataclass(frozen=True)
class NetworkConfig:
    """Address, prefix length and gateway of one endpoint interface"""
    address: str
    prefix: int
    gateway: str

    @property
    def cidr(self) -> str:
        return f"{self.address}/{self.prefix}"

    @staticmethod
    def parse(value: str) -> "NetworkConfig":
        """Parse the compact 'ip/prefix:gateway' form"""
        if not isinstance(value, str) or ":" not in value:
            raise ValueError(f"expected 'ip/prefix:gateway', got {value!r}")
        cidr, gateway = value.rsplit(":", 1)
        return NetworkConfig.build(cidr, gateway)

    @staticmethod
    def build(cidr: str, gateway: str) -> "NetworkConfig":
        if "/" not in str(cidr):
            raise ValueError(f"address {cidr!r} has no prefix length")
        interface = ipaddress.ip_interface(str(cidr).strip())
        gateway_address = ipaddress.ip_address(str(gateway).strip())
        return NetworkConfig(address=str(interface.ip),
                             prefix=interface.network.prefixlen,
                             gateway=str(gateway_address))

    def __str__(self):
        return f"{self.cidr} gw {self.gateway}"


@dataclass(frozen=True)
class VlanConfig:
    tag: int | None = None
    trunks: tuple[int, ...] = ()

    def __str__(self):
        if self.tag is not None:
            return f"access vlan {self.tag}"
        return "trunk vlans " + ",".join(str(vlan) for vlan in self.trunks)


@dataclass(frozen=True)
class SetupStep:
    """One command run inside an endpoint by the playground's setup/cleanup callback"""
    endpoint: str
    command: str


@dataclass(frozen=True)
class Endpoint:
    name: str
    network: NetworkConfig
    ofport: int | None = None
    image: str | None = None
    vlan: VlanConfig | None = None


@dataclass(frozen=True)
class Playground:
    name: str
    display_name: str
    description: str = ""
    version: str = ""
    endpoints: tuple[Endpoint, ...] = ()
    bridge: str | None = None
    image: str | None = None
    protocols: tuple[str, ...] = ()
    setup_steps: tuple[SetupStep, ...] = ()
    cleanup_steps: tuple[SetupStep, ...] = ()
    help_text: str = ""
    path: str | None = None

    @property
    def is_default(self) -> bool:
        return self.path is None

    @property
    def flows_dir(self) -> str | None:
        return None if self.path is None else os.path.join(self.path, "flows")

    @property
    def hooks_dir(self) -> str | None:
        return None if self.path is None else os.path.join(self.path, "hooks.d")

    @property
    def endpoint_names(self) -> list[str]:
        return [endpoint.name for endpoint in self.endpoints]

    @property
    def fixed_ports(self) -> dict[str, int]:
        return {endpoint.name: endpoint.ofport for endpoint in self.endpoints if endpoint.ofport is not None}

    def endpoint(self, name: str) -> Endpoint | None:
        for endpoint in self.endpoints:
            if endpoint.name == name:
                return endpoint
        return None


DEFAULT_PLAYGROUND = Playground(
    name=Consts.DEFAULT_PLAYGROUND,
    display_name="Default 3-Container Lab",
    description="Built-in topology used when no playground is selected",
    version="1.0",
    endpoints=(
        Endpoint("c1", NetworkConfig("10.0.0.1", 24, "10.0.0.254"), 101),
        Endpoint("c2", NetworkConfig("10.0.0.2", 24, "10.0.0.254"), 102),
        Endpoint("c3", NetworkConfig("20.0.0.1", 24, "20.0.0.254"), 103),
    ),
)


@dataclass(frozen=True)
class LabState:
    """
    Everything one command knows about the lab.

    Components never mutate it; they return an updated copy.
    """
    bridge: str
    playground: Playground
    phase: LabPhase = LabPhase.ABSENT
    endpoints: dict[str, EndpointStatus] = field(default_factory=dict)
    ports: dict[str, int | None] = field(default_factory=dict)
    port_mismatches: dict[str, tuple[int, int | None]] = field(default_factory=dict)

    def with_phase(self, phase: LabPhase) -> "LabState":
        return replace(self, phase=phase)

    def with_endpoint(self, name: str, status: EndpointStatus) -> "LabState":
        return replace(self, endpoints={**self.endpoints, name: status})

    def with_port(self, name: str, requested: int, actual: int | None) -> "LabState":
        mismatches = {key: value for key, value in self.port_mismatches.items() if key != name}
        if actual != requested:
            mismatches[name] = (requested, actual)
        return replace(self, ports={**self.ports, name: actual}, port_mismatches=mismatches)

    def without_endpoint(self, name: str) -> "LabState":
        return replace(self,
                       endpoints={**self.endpoints, name: EndpointStatus.ABSENT},
                       ports={key: value for key, value in self.ports.items() if key != name},
                       port_mismatches={key: value for key, value in self.port_mismatches.items() if key != name})
