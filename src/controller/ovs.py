import json
import os

from functions import Functions, PermissionReconciler, logger_ovs

from .interface import SwitchController


class OvsSwitchController(SwitchController):
    """SwitchController backed by ovs-vsctl, ovs-ofctl and ovs-docker"""

    def __init__(self, permissions: PermissionReconciler | None = None, vsctl="ovs-vsctl", ofctl="ovs-ofctl",
                 ovs_docker="ovs-docker"):
        self.permissions = permissions
        self.vsctl = vsctl
        self.ofctl = ofctl
        # ovs-docker needs root to enter the container network namespace
        self.ovs_docker = [ovs_docker] if os.geteuid() == 0 else ["sudo", ovs_docker]

    def _vsctl(self, *args, log_errors=True):
        return Functions.run_command(logger_ovs, [self.vsctl, *args], log_errors=log_errors)

    def _query(self, *args):
        return_code, output = self._vsctl("--data=bare", "--no-heading", *args, log_errors=False)
        if return_code != 0:
            return []
        return [line.strip() for line in output if line.strip() != ""]

    def _reassert(self, bridge):
        if self.permissions is not None:
            self.permissions.reassert(bridge)

    @staticmethod
    def _quote(value):
        # ovsdb string syntax accepts JSON-style double quoted strings
        return json.dumps(str(value), ensure_ascii=False)

    def exists(self, bridge):
        return_code, _ = self._vsctl("br-exists", bridge, log_errors=False)
        return return_code == 0

    def list_bridges(self):
        return self._query("list-br")

    def create(self, bridge, external_ids=None):
        command = ["add-br", bridge]
        if external_ids:
            command += ["--", "set", "bridge", bridge]
            command += [f"external_ids:{key}={self._quote(value)}" for key, value in external_ids.items()]
        return_code, _ = self._vsctl(*command)
        self._reassert(bridge)
        return return_code == 0

    def delete(self, bridge):
        return_code, _ = self._vsctl("--if-exists", "del-br", bridge)
        return return_code == 0

    def set_property(self, bridge, column, value):
        return_code, _ = self._vsctl("set", "bridge", bridge, f"{column}={self._quote(value)}")
        self._reassert(bridge)
        return return_code == 0

    def set_protocols(self, bridge, protocols):
        return_code, _ = self._vsctl("set", "bridge", bridge, "protocols=" + ",".join(protocols))
        self._reassert(bridge)
        return return_code == 0

    def get_external_id(self, bridge, key):
        # "get" exits non-zero on a missing key unless --if-exists is given
        lines = self._query("--if-exists", "get", "bridge", bridge, f"external_ids:{key}")
        if not lines:
            return None
        value = lines[0].strip().strip('"')
        if value in ("", "[]"):
            return None
        return value

    def flush_flows(self, bridge):
        return_code, _ = Functions.run_command(logger_ovs, [self.ofctl, "del-flows", bridge])
        return return_code == 0

    def add_flow(self, bridge, rule):
        return_code, _ = Functions.run_command(logger_ovs, [self.ofctl, "add-flow", bridge, rule])
        return return_code == 0

    def dump_flows(self, bridge):
        return_code, output = Functions.run_command(logger_ovs, [self.ofctl, "dump-flows", bridge])
        if return_code != 0:
            return []
        return [line.strip() for line in output if line.strip() != "" and "_FLOW reply" not in line]

    def attach(self, bridge, endpoint, interface, cidr, gateway):
        return_code, _ = Functions.run_command(
            logger_ovs,
            [*self.ovs_docker, "add-port", bridge, interface, endpoint, f"--ipaddress={cidr}", f"--gateway={gateway}"])
        return return_code == 0

    def detach(self, bridge, endpoint, interface):
        return_code, _ = Functions.run_command(logger_ovs, [*self.ovs_docker, "del-port", bridge, interface, endpoint],
                                               log_errors=False)
        return return_code == 0

    def find_port_by_endpoint(self, endpoint, interface):
        lines = self._query("--columns=name", "find", "Interface",
                            f"external_ids:container_id={endpoint}", f"external_ids:container_iface={interface}")
        return lines[0] if lines else None

    def request_port(self, port_name, number):
        return_code, _ = self._vsctl("set", "Interface", port_name, f"ofport_request={number}")
        return return_code == 0

    def get_port_number(self, port_name):
        lines = self._query("--columns=ofport", "find", "Interface", f"name={port_name}")
        if not lines:
            return None
        try:
            number = int(lines[0])
        except ValueError:
            return None
        return number if number > 0 else None

    def set_port_vlan(self, port_name, tag=None, trunks=None):
        if tag is not None:
            return_code, _ = self._vsctl("set", "port", port_name, f"tag={tag}", "--", "clear", "port", port_name, "trunks")
        elif trunks:
            return_code, _ = self._vsctl("set", "port", port_name, "trunks=" + ",".join(str(vlan) for vlan in trunks),
                                         "--", "clear", "port", port_name, "tag")
        else:
            return_code, _ = self._vsctl("clear", "port", port_name, "tag", "--", "clear", "port", port_name, "trunks")
        return return_code == 0

    def list_endpoints(self, bridge):
        endpoints = []
        for port in self._query("list-ports", bridge):
            container = self._query("--if-exists", "get", "Interface", port, "external_ids:container_id")
            if container and container[0].strip('"') not in ("", "[]"):
                endpoints.append(container[0].strip('"'))
        return endpoints
