from deepdiff import DeepDiff

from functions import ConstructionError, Consts, logger_ovslab
from hooks import HookStage
from playground import EndpointStatus


class TopologyReconciler:
    """
    Makes the running containers match a playground's endpoint list.

    Endpoints are created in declared order so that whatever port numbers the
    switch hands out on its own are the same on every run; the declared fixed
    port is then requested for each interface.
    """

    def __init__(self, switch, runtime, hooks=None, interface=Consts.ENDPOINT_INTERFACE, image=Consts.DEFAULT_IMAGE):
        self.switch = switch
        self.runtime = runtime
        self.hooks = hooks
        self.interface = interface
        self.image = image

    def reconcile(self, state, playground):
        desired = playground.endpoint_names
        attached = self.switch.list_endpoints(state.bridge) if self.switch.exists(state.bridge) else []

        for name in attached:
            if name not in desired:
                logger_ovslab.info(f"Removing endpoint {name}, not part of playground {playground.name}")
                state = self._remove(state, name)

        for endpoint in playground.endpoints:
            if endpoint.name in attached and self.runtime.is_running(endpoint.name):
                logger_ovslab.info(f"Endpoint {endpoint.name} already attached to {state.bridge}")
                state = state.with_endpoint(endpoint.name, EndpointStatus.ATTACHED)
            else:
                state = self.create_endpoint(state, playground, endpoint)
            state = self.assign_fixed_port(state, endpoint)
            state = self.apply_vlan(state, endpoint)

        return state

    def create_endpoint(self, state, playground, endpoint):
        if self.runtime.exists(endpoint.name):
            self.switch.detach(state.bridge, endpoint.name, self.interface)
            self.runtime.remove(endpoint.name)

        image = endpoint.image or playground.image or self.image
        logger_ovslab.info(f"Creating container {endpoint.name} ({image})")
        if not self.runtime.create(endpoint.name, image):
            raise ConstructionError(f"Failed to create container {endpoint.name}")
        state = state.with_endpoint(endpoint.name, EndpointStatus.CREATED)

        logger_ovslab.info(f"Connecting {endpoint.name} to bridge {state.bridge}")
        if not self.switch.attach(state.bridge, endpoint.name, self.interface,
                                  endpoint.network.cidr, endpoint.network.gateway):
            raise ConstructionError(f"Failed to connect container {endpoint.name} to bridge {state.bridge}")
        logger_ovslab.info(f"Container {endpoint.name} configured with IP {endpoint.network.cidr}, "
                           f"GW {endpoint.network.gateway}")
        return state.with_endpoint(endpoint.name, EndpointStatus.ATTACHED)

    def assign_fixed_port(self, state, endpoint):
        if endpoint.ofport is None:
            logger_ovslab.warning(f"No ofport mapping defined for container {endpoint.name}")
            return state.with_endpoint(endpoint.name, EndpointStatus.RUNNING)

        port_name = self.switch.find_port_by_endpoint(endpoint.name, self.interface)
        if not port_name:
            raise ConstructionError(f"Failed to find interface for container {endpoint.name}")

        if not self.switch.request_port(port_name, endpoint.ofport):
            logger_ovslab.error(f"Failed to set ofport {endpoint.ofport} for container {endpoint.name}")

        # The switch may silently hand out another number (e.g. when the requested one is taken)
        actual = self.switch.get_port_number(port_name)
        if actual == endpoint.ofport:
            logger_ovslab.info(f"Container {endpoint.name} verified at ofport {actual}")
        else:
            logger_ovslab.warning(f"Container {endpoint.name} ofport mismatch: requested {endpoint.ofport}, got {actual}")

        state = state.with_port(endpoint.name, endpoint.ofport, actual)
        return state.with_endpoint(endpoint.name, EndpointStatus.RUNNING)

    def apply_vlan(self, state, endpoint):
        if endpoint.vlan is None:
            return state

        port_name = self.switch.find_port_by_endpoint(endpoint.name, self.interface)
        if not port_name:
            logger_ovslab.warning(f"Could not find port for container {endpoint.name}, VLAN not set")
            return state

        if self.switch.set_port_vlan(port_name, tag=endpoint.vlan.tag, trunks=list(endpoint.vlan.trunks)):
            logger_ovslab.info(f"Set {endpoint.vlan} for {endpoint.name} ({port_name})")
        else:
            logger_ovslab.warning(f"Failed to set {endpoint.vlan} for {endpoint.name} ({port_name})")
        return state

    def teardown(self, state, playground):
        logger_ovslab.info("Cleaning up existing containers...")
        if self.hooks is not None:
            self.hooks.run(HookStage.CLEANUP, state.bridge, playground)

        for endpoint in playground.endpoints:
            state = self._remove(state, endpoint.name)
        return state

    def _remove(self, state, name):
        self.switch.detach(state.bridge, name, self.interface)
        if self.runtime.exists(name):
            logger_ovslab.info(f"Removing container {name}")
            if not self.runtime.remove(name):
                logger_ovslab.warning(f"Failed to remove container {name}")
        return state.without_endpoint(name)

    def port_info(self, playground) -> dict:
        ports = {}
        for endpoint in playground.endpoints:
            port_name = self.switch.find_port_by_endpoint(endpoint.name, self.interface)
            ports[endpoint.name] = self.switch.get_port_number(port_name) if port_name else None
        return ports

    def drift(self, playground) -> dict:
        """Differences between declared and actual fixed ports (empty when in sync)"""
        actual = {name: number for name, number in self.port_info(playground).items()
                  if name in playground.fixed_ports}
        return DeepDiff(playground.fixed_ports, actual).to_dict()

    def refresh(self, state, playground):
        """Rebuild endpoint statuses and ports from what is actually running"""
        attached = self.switch.list_endpoints(state.bridge) if self.switch.exists(state.bridge) else []
        ports = self.port_info(playground)
        for endpoint in playground.endpoints:
            if not self.runtime.exists(endpoint.name):
                state = state.without_endpoint(endpoint.name)
                continue
            if endpoint.name not in attached:
                state = state.with_endpoint(endpoint.name, EndpointStatus.CREATED)
                continue
            if endpoint.ofport is not None:
                state = state.with_port(endpoint.name, endpoint.ofport, ports[endpoint.name])
            running = self.runtime.is_running(endpoint.name)
            state = state.with_endpoint(endpoint.name, EndpointStatus.RUNNING if running else EndpointStatus.ATTACHED)
        return state
