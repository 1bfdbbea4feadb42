from contextlib import nullcontext
from dataclasses import dataclass, field

from controller import ContainerRuntime, SwitchController
from functions import ConstructionError, Consts, LabEnv, LabError, PermissionReconciler, SwitchNotReady, logger_ovslab
from hooks import HookRunner, HookStage
from playground import BridgeStateStore, LabPhase, LabState, PlaygroundRegistry
from reconciler import EXAMPLE_FLOWS, LEARNING_FLOWS, FlowReconciler, TopologyReconciler

from .lock import LabLock


@dataclass
class LabStatus:
    state: LabState
    bridge_exists: bool
    active_playground: str | None = None
    metadata: dict = field(default_factory=dict)
    ports: dict = field(default_factory=dict)
    drift: dict = field(default_factory=dict)
    flow_count: int = 0


class Lab:
    """
    Sequences the registry, reconcilers, state store and hooks into the lab lifecycle.

    Absent -> Created (bridge exists) -> Configured (playground recorded on the bridge).
    """

    def __init__(self, switch, runtime, registry=None, permissions=None, env=None, lock=None):
        self.env = env or LabEnv.read()
        self.switch = switch
        self.runtime = runtime
        self.registry = registry or PlaygroundRegistry()
        self.permissions = permissions
        self.store = BridgeStateStore(switch, self.env["metadata_max_length"])
        self.hooks = HookRunner(runtime)
        self.topology = TopologyReconciler(switch, runtime, self.hooks, self.env["interface"], self.env["image"])
        self.flows = FlowReconciler(switch)
        if lock is None and self.env["lock"]:
            lock = LabLock(Consts.lock_file)
        self.lock = lock

    @staticmethod
    def from_env():
        env = LabEnv.read_file()
        permissions = PermissionReconciler.from_env(env)
        switch = SwitchController.factory(SwitchController.OVS, permissions)
        runtime = ContainerRuntime.factory(ContainerRuntime.DOCKER)
        return Lab(switch, runtime, PlaygroundRegistry(), permissions, env)

    def _locked(self):
        return self.lock.hold() if self.lock is not None else nullcontext()

    def bridge_for(self, playground) -> str:
        return playground.bridge or self.env["bridge"]

    def resolve(self, name=None) -> LabState:
        """Load the named playground, or the one recorded on a bridge, and describe where the lab stands"""
        if name:
            playground = self.registry.load(name)
            bridge = self.bridge_for(playground)
        else:
            active_bridge = self.store.find_active_bridge(self.env["bridge"])
            playground = self.registry.get_active(self.store, active_bridge)
            bridge = playground.bridge or active_bridge

        if not self.switch.exists(bridge):
            phase = LabPhase.ABSENT
        elif self.store.get_active_playground(bridge):
            phase = LabPhase.CONFIGURED
        else:
            phase = LabPhase.CREATED
        return LabState(bridge=bridge, playground=playground, phase=phase)

    def setup(self, name=None) -> LabState:
        with self._locked():
            previous = self.resolve()
            playground = self.registry.load(name)
            state = LabState(bridge=self.bridge_for(playground), playground=playground)
            logger_ovslab.info(f"Setting up OVS lab environment on {state.bridge}...")

            if self.permissions is not None:
                self.permissions.reassert_database()

            if previous.phase == LabPhase.CONFIGURED and previous.bridge != state.bridge:
                logger_ovslab.info(f"Removing playground {previous.playground.name} from {previous.bridge}")
                self.flows.flush(previous)
                self.topology.teardown(previous, previous.playground)
                self.store.clear_active_playground(previous.bridge)

            state = self.topology.teardown(state, playground)

            if not self.switch.exists(state.bridge):
                logger_ovslab.info(f"Creating OVS bridge {state.bridge}")
                if not self.switch.create(state.bridge, {BridgeStateStore.PLAYGROUND_KEY: playground.name}):
                    raise ConstructionError(f"Failed to create bridge {state.bridge}")
            else:
                logger_ovslab.info(f"Bridge {state.bridge} already exists")
                if self.permissions is not None:
                    self.permissions.reassert(state.bridge)
            state = state.with_phase(LabPhase.CREATED)

            if playground.protocols:
                if self.switch.set_protocols(state.bridge, list(playground.protocols)):
                    logger_ovslab.info(f"Bridge {state.bridge} protocols: {','.join(playground.protocols)}")
                else:
                    logger_ovslab.warning(f"Failed to set protocols on {state.bridge}")

            self.flows.flush(state)
            state = self.topology.reconcile(state, playground)

            self.hooks.run(HookStage.PRE, state.bridge, playground)

            self.registry.set_active(self.store, state.bridge, playground)

            self.hooks.run(HookStage.POST, state.bridge, playground)

            self.flows.apply(state, playground)
            state = state.with_phase(LabPhase.CONFIGURED)

        logger_ovslab.info("OVS lab setup complete!")
        if not playground.is_default:
            logger_ovslab.info(f"Playground: {playground.name} ({playground.display_name})")
        if state.port_mismatches:
            logger_ovslab.warning(f"Fixed ports not honored for: {', '.join(sorted(state.port_mismatches))}; "
                                  "flow rules using them may not match")
        return state

    def destroy(self, confirm, confirm_bridge=None) -> LabState:
        """
        Tear the lab down after confirmation.

        Args:
            confirm: Callable returning the user's answer; only the literal 'yes' proceeds
            confirm_bridge: Callable returning 'y'/'Y' to also delete the bridge
        """
        state = self.resolve()
        if str(confirm()).strip() != "yes":
            logger_ovslab.info("Lab destruction cancelled")
            return state

        with self._locked():
            logger_ovslab.info("Destroying lab environment...")
            self.flows.flush(state)
            state = self.topology.teardown(state, state.playground)

            if confirm_bridge is not None and str(confirm_bridge()).strip() in ("y", "Y"):
                if self.switch.exists(state.bridge):
                    logger_ovslab.info(f"Removing bridge {state.bridge}")
                    if not self.switch.delete(state.bridge):
                        logger_ovslab.warning(f"Failed to remove bridge {state.bridge}")

            state = state.with_phase(LabPhase.CREATED if self.switch.exists(state.bridge) else LabPhase.ABSENT)

        logger_ovslab.info("Lab environment destroyed")
        return state

    def reload_flows(self, name=None):
        with self._locked():
            state = self.resolve(name)
            if state.phase == LabPhase.CREATED:
                logger_ovslab.warning(f"No playground recorded on {state.bridge}; was setup run?")
            return self.flows.apply(state, state.playground)

    def show_flows(self) -> list[str]:
        return self.flows.dump(self.resolve())

    def flush_flows(self) -> bool:
        with self._locked():
            state = self.resolve()
            if not self.switch.exists(state.bridge):
                raise SwitchNotReady(state.bridge)
            return self.flows.flush(state)

    def add_learning_flows(self):
        """Flood everything, turning the bridge into a plain hub"""
        with self._locked():
            return self.flows.add(self.resolve(), LEARNING_FLOWS)

    def add_example_flows(self):
        with self._locked():
            state = self.resolve()
            if not {101, 102, 103} <= set(state.playground.fixed_ports.values()):
                logger_ovslab.warning(f"Example flows use ofports 101-103, which playground "
                                      f"{state.playground.name} does not declare")
            return self.flows.add(state, EXAMPLE_FLOWS, replace=True)

    def list_containers(self) -> list[dict]:
        state = self.resolve()
        containers = self.runtime.list(state.playground.endpoint_names)
        if not containers:
            logger_ovslab.warning("No containers found matching lab configuration")
        return containers

    def status(self) -> LabStatus:
        state = self.resolve()
        exists = self.switch.exists(state.bridge)
        if not exists:
            return LabStatus(state=state, bridge_exists=False)

        state = self.topology.refresh(state, state.playground)
        return LabStatus(
            state=state,
            bridge_exists=True,
            active_playground=self.store.get_active_playground(state.bridge),
            metadata=self.store.get_metadata(state.bridge),
            ports=self.topology.port_info(state.playground),
            drift=self.topology.drift(state.playground),
            flow_count=len(self.switch.dump_flows(state.bridge)),
        )

    def exec(self, endpoint, command):
        state = self.resolve()
        if state.playground.endpoint(endpoint) is None:
            raise LabError(f"Invalid container name: {endpoint} "
                           f"(available: {', '.join(state.playground.endpoint_names)})")
        if not self.runtime.is_running(endpoint):
            raise LabError(f"Container {endpoint} is not running")
        logger_ovslab.debug(f"Executing '{command}' in container {endpoint}")
        return self.runtime.exec(endpoint, command)

    def test_connectivity(self) -> list[tuple[str, str, str, bool]]:
        """Ping every running endpoint from every other one: [(source, target, address, reachable)]"""
        state = self.resolve()
        running = [endpoint for endpoint in state.playground.endpoints if self.runtime.is_running(endpoint.name)]
        if len(running) < 2:
            logger_ovslab.warning("Need at least 2 running containers for connectivity test")
            return []

        results = []
        for source in running:
            for target in running:
                if source.name == target.name:
                    continue
                return_code, _ = self.runtime.exec(source.name, f"ping -c 1 -W 2 {target.network.address}")
                results.append((source.name, target.name, target.network.address, return_code == 0))
        return results

    def list_playgrounds(self):
        return self.registry.list()

    def help(self, name=None) -> str:
        if not name:
            self.resolve()
        return self.registry.help_text(name)
