import os

import yaml

from functions import Consts, DefinitionError, Functions, PlaygroundNotFound, logger_ovslab

from .types import DEFAULT_PLAYGROUND, Endpoint, NetworkConfig, Playground, SetupStep, VlanConfig

# Highest OpenFlow port number usable for a regular port (OFPP_MAX)
MAX_OFPORT = 65279


class PlaygroundRegistry:
    """Discovers and loads playground definitions from <root>/<name>/definition.yml"""

    def __init__(self, root: str | None = None):
        self.root = root or Consts.playgrounds_dir
        self.current: Playground | None = None

    def definition_path(self, name: str) -> str:
        return os.path.join(self.root, name, Consts.DEFINITION_FILE)

    def list(self):
        """
        Yield (name, display_name, description) for every valid playground.

        Directories without a definition file are ignored; broken definitions
        are skipped with a warning.
        """
        if not os.path.isdir(self.root):
            logger_ovslab.warning(f"No playgrounds directory found at {self.root}")
            return

        for name in sorted(os.listdir(self.root)):
            if not os.path.isfile(self.definition_path(name)):
                continue
            try:
                playground = self._read(name)
            except DefinitionError as e:
                logger_ovslab.warning(f"Skipping playground: {e}")
                continue
            yield playground.name, playground.display_name, playground.description

    def load(self, name: str | None = None) -> Playground:
        if not name or name == Consts.DEFAULT_PLAYGROUND:
            logger_ovslab.info("Using default configuration (no playground specified)")
            self.current = DEFAULT_PLAYGROUND
            return self.current

        if not os.path.isfile(self.definition_path(name)):
            raise PlaygroundNotFound(name, self.definition_path(name))

        logger_ovslab.info(f"Loading playground: {name}")
        self.current = self._read(name)
        logger_ovslab.info(f"Playground '{name}' loaded: {self.current.display_name}")
        if self.current.bridge:
            logger_ovslab.info(f"Using bridge: {self.current.bridge}")
        return self.current

    def get_active(self, store, bridge: str) -> Playground:
        """Load the playground recorded on the bridge, falling back to the default topology"""
        name = store.get_active_playground(bridge)
        if not name:
            logger_ovslab.info("No active playground detected, using default configuration")
            return self.load(None)

        logger_ovslab.info(f"Detected active playground: {name}")
        try:
            return self.load(name)
        except (PlaygroundNotFound, DefinitionError) as e:
            logger_ovslab.warning(f"Failed to load detected playground {name}: {e}")
            return self.load(None)

    def set_active(self, store, bridge: str, playground: Playground) -> bool:
        """Record the playground and its display metadata on the bridge"""
        if not store.set_active_playground(bridge, playground.name):
            return False
        return store.set_metadata(bridge, playground.display_name, playground.version, playground.description)

    def help_text(self, name: str | None = None) -> str:
        playground = self.load(name) if name else (self.current or self.load(None))
        if playground.help_text:
            return playground.help_text
        return f"No help available for playground: {playground.name}"

    def _read(self, name: str) -> Playground:
        path = self.definition_path(name)
        try:
            content = yaml.safe_load(Functions.load(path))
        except yaml.YAMLError as e:
            raise DefinitionError(name, f"invalid YAML: {e}")
        except (OSError, UnicodeDecodeError) as e:
            raise DefinitionError(name, str(e))
        return self.parse_definition(name, content, os.path.dirname(path))

    @staticmethod
    def parse_definition(name: str, content, path: str | None = None) -> Playground:
        if not isinstance(content, dict):
            raise DefinitionError(name, "definition must be a mapping")

        raw_endpoints = content.get("endpoints")
        if not isinstance(raw_endpoints, list) or len(raw_endpoints) == 0:
            raise DefinitionError(name, "'endpoints' must be a non-empty list")

        endpoints = []
        seen_ports = {}
        for raw in raw_endpoints:
            endpoint = PlaygroundRegistry._parse_endpoint(name, raw)
            if endpoint.name in [existing.name for existing in endpoints]:
                raise DefinitionError(name, f"duplicate endpoint '{endpoint.name}'")
            if endpoint.ofport is not None:
                if endpoint.ofport in seen_ports:
                    raise DefinitionError(
                        name, f"ofport {endpoint.ofport} used by both {seen_ports[endpoint.ofport]} and {endpoint.name}")
                seen_ports[endpoint.ofport] = endpoint.name
            endpoints.append(endpoint)

        endpoint_names = [endpoint.name for endpoint in endpoints]
        return Playground(
            name=name,
            display_name=str(content.get("name") or name),
            description=str(content.get("description") or "No description"),
            version=str(content.get("version") or ""),
            endpoints=tuple(endpoints),
            bridge=str(content["bridge"]) if content.get("bridge") else None,
            image=str(content["image"]) if content.get("image") else None,
            protocols=PlaygroundRegistry._parse_protocols(name, content.get("protocols")),
            setup_steps=PlaygroundRegistry._parse_steps(name, content.get("setup"), endpoint_names),
            cleanup_steps=PlaygroundRegistry._parse_steps(name, content.get("cleanup"), endpoint_names),
            help_text=str(content.get("help") or ""),
            path=path,
        )

    @staticmethod
    def _parse_endpoint(name, raw) -> Endpoint:
        if not isinstance(raw, dict) or not raw.get("name"):
            raise DefinitionError(name, f"endpoint entry {raw!r} has no name")
        endpoint_name = str(raw["name"])

        try:
            if "network" in raw:
                network = NetworkConfig.parse(raw["network"])
            elif "address" in raw and "gateway" in raw:
                network = NetworkConfig.build(raw["address"], raw["gateway"])
            else:
                raise ValueError("needs 'network' or 'address' and 'gateway'")
        except ValueError as e:
            raise DefinitionError(name, f"endpoint {endpoint_name}: {e}")

        ofport = raw.get("ofport")
        if ofport is not None:
            try:
                ofport = int(ofport)
            except (TypeError, ValueError):
                raise DefinitionError(name, f"endpoint {endpoint_name}: ofport {raw['ofport']!r} is not a number")
            if ofport < 1 or ofport > MAX_OFPORT:
                raise DefinitionError(name, f"endpoint {endpoint_name}: ofport {ofport} out of range 1-{MAX_OFPORT}")

        vlan = None
        if raw.get("vlan") is not None:
            vlan = PlaygroundRegistry._parse_vlan(name, endpoint_name, raw["vlan"])

        return Endpoint(name=endpoint_name,
                        network=network,
                        ofport=ofport,
                        image=str(raw["image"]) if raw.get("image") else None,
                        vlan=vlan)

    @staticmethod
    def _parse_vlan(name, endpoint_name, raw) -> VlanConfig:
        try:
            if isinstance(raw, int):
                return VlanConfig(tag=raw)
            if isinstance(raw, dict) and "tag" in raw:
                return VlanConfig(tag=int(raw["tag"]))
            if isinstance(raw, dict) and "trunks" in raw:
                trunks = raw["trunks"]
                if isinstance(trunks, str):
                    trunks = [vlan.strip() for vlan in trunks.split(",") if vlan.strip()]
                return VlanConfig(trunks=tuple(int(vlan) for vlan in trunks))
        except (TypeError, ValueError):
            pass
        raise DefinitionError(name, f"endpoint {endpoint_name}: invalid vlan {raw!r}")

    @staticmethod
    def _parse_protocols(name, raw) -> tuple[str, ...]:
        if not raw:
            return ()
        if isinstance(raw, str):
            raw = raw.split(",")
        if not isinstance(raw, list):
            raise DefinitionError(name, f"invalid protocols {raw!r}")
        protocols = tuple(str(protocol).strip() for protocol in raw if str(protocol).strip())
        for protocol in protocols:
            if not protocol.startswith("OpenFlow"):
                raise DefinitionError(name, f"unknown protocol '{protocol}'")
        return protocols

    @staticmethod
    def _parse_steps(name, raw, endpoint_names) -> tuple[SetupStep, ...]:
        if not raw:
            return ()
        if not isinstance(raw, list):
            raise DefinitionError(name, "setup/cleanup must be a list of {endpoint, command}")

        steps = []
        for entry in raw:
            if not isinstance(entry, dict) or "endpoint" not in entry or "command" not in entry:
                raise DefinitionError(name, f"step {entry!r} needs 'endpoint' and 'command'")
            if str(entry["endpoint"]) not in endpoint_names:
                raise DefinitionError(name, f"step refers to unknown endpoint '{entry['endpoint']}'")
            steps.append(SetupStep(endpoint=str(entry["endpoint"]), command=str(entry["command"])))
        return tuple(steps)
