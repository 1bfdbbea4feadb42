from unittest import mock

import pytest
from docker.errors import APIError, NotFound

from controller import ContainerRuntime, SwitchController
from controller.docker import DockerRuntime
from controller.ovs import OvsSwitchController
from functions import Functions


class CommandRecorder:
    """Replaces Functions.run_command; answers by the first matching argument fragment"""

    def __init__(self, responses=None):
        self.commands = []
        self.responses = responses or {}

    def __call__(self, log_source, command, log_output=False, log_errors=True):
        self.commands.append(list(command))
        joined = " ".join(command)
        for fragment, response in self.responses.items():
            if fragment in joined:
                return response
        return [0, []]


@pytest.fixture
def recorder(monkeypatch):
    recorder = CommandRecorder()
    monkeypatch.setattr(Functions, "run_command", recorder)
    return recorder


@pytest.fixture
def ovs(recorder):
    return OvsSwitchController(permissions=None)


class TestOvsSwitchController:
    def test_factory(self):
        assert isinstance(SwitchController.factory(SwitchController.OVS), OvsSwitchController)
        assert SwitchController.factory("linuxbridge") is None

    def test_exists(self, ovs, recorder):
        assert ovs.exists("br-lab") is True
        assert recorder.commands[0] == ["ovs-vsctl", "br-exists", "br-lab"]

        recorder.responses["br-exists"] = [2, []]
        assert ovs.exists("br-lab") is False

    def test_list_bridges(self, ovs, recorder):
        recorder.responses["list-br"] = [0, ["br-lab", "br-noflows", ""]]
        assert ovs.list_bridges() == ["br-lab", "br-noflows"]
        assert recorder.commands[0] == ["ovs-vsctl", "--data=bare", "--no-heading", "list-br"]

        recorder.responses["list-br"] = [1, []]
        assert ovs.list_bridges() == []

    def test_create_with_external_ids(self, ovs, recorder):
        permissions = mock.Mock()
        ovs.permissions = permissions

        assert ovs.create("br-lab", {"playground": "my lab"})
        assert recorder.commands[0] == [
            "ovs-vsctl", "add-br", "br-lab", "--", "set", "bridge", "br-lab", 'external_ids:playground="my lab"'
        ]
        permissions.reassert.assert_called_once_with("br-lab")

    def test_set_property_quotes_value(self, ovs, recorder):
        assert ovs.set_property("br-lab", "external_ids:playground_desc", 'say "hi"')
        assert recorder.commands[0][-1] == 'external_ids:playground_desc="say \\"hi\\""'

    @pytest.mark.parametrize("output, expected", [
        (["basic"], "basic"),
        (['"my lab"'], "my lab"),
        ([""], None),
        (["[]"], None),
        ([], None),
    ])
    def test_get_external_id(self, ovs, recorder, output, expected):
        recorder.responses["external_ids:playground"] = [0, output]
        assert ovs.get_external_id("br-lab", "playground") == expected
        assert "--if-exists" in recorder.commands[0]

    def test_get_external_id_failure(self, ovs, recorder):
        recorder.responses["external_ids:playground"] = [1, ["ovs-vsctl: no bridge named br-lab"]]
        assert ovs.get_external_id("br-lab", "playground") is None

    def test_flows(self, ovs, recorder):
        assert ovs.flush_flows("br-lab")
        assert ovs.add_flow("br-lab", "priority=1,actions=drop")
        assert recorder.commands == [
            ["ovs-ofctl", "del-flows", "br-lab"],
            ["ovs-ofctl", "add-flow", "br-lab", "priority=1,actions=drop"],
        ]

    def test_dump_flows(self, ovs, recorder):
        recorder.responses["dump-flows"] = [0, [
            "NXST_FLOW reply (xid=0x4):",
            " cookie=0x0, duration=1.2s, table=0, n_packets=0, priority=1 actions=drop",
            "",
        ]]
        assert ovs.dump_flows("br-lab") == ["cookie=0x0, duration=1.2s, table=0, n_packets=0, priority=1 actions=drop"]

        recorder.responses["dump-flows"] = [1, []]
        assert ovs.dump_flows("br-lab") == []

    def test_attach_and_detach(self, ovs, recorder):
        assert ovs.attach("br-lab", "c1", "eth0", "10.0.0.1/24", "10.0.0.254")
        assert ovs.detach("br-lab", "c1", "eth0")

        add_port, del_port = recorder.commands
        assert add_port[-6:] == ["add-port", "br-lab", "eth0", "c1", "--ipaddress=10.0.0.1/24", "--gateway=10.0.0.254"]
        assert del_port[-4:] == ["del-port", "br-lab", "eth0", "c1"]
        assert "ovs-docker" in add_port

    def test_ports(self, ovs, recorder):
        recorder.responses["--columns=name"] = [0, ["a1b2c3_l"]]
        recorder.responses["--columns=ofport"] = [0, ["101"]]

        assert ovs.find_port_by_endpoint("c1", "eth0") == "a1b2c3_l"
        assert "external_ids:container_id=c1" in recorder.commands[0]
        assert ovs.request_port("a1b2c3_l", 101)
        assert recorder.commands[1][-1] == "ofport_request=101"
        assert ovs.get_port_number("a1b2c3_l") == 101

    @pytest.mark.parametrize("output", [[], ["-1"], ["[]"]])
    def test_port_number_unknown(self, ovs, recorder, output):
        recorder.responses["--columns=ofport"] = [0, output]
        assert ovs.get_port_number("a1b2c3_l") is None

    def test_find_port_missing(self, ovs, recorder):
        recorder.responses["--columns=name"] = [0, []]
        assert ovs.find_port_by_endpoint("c1", "eth0") is None

    def test_vlan(self, ovs, recorder):
        ovs.set_port_vlan("p1", tag=10)
        ovs.set_port_vlan("p2", trunks=[10, 20])
        ovs.set_port_vlan("p3")

        assert "tag=10" in recorder.commands[0]
        assert "trunks=10,20" in recorder.commands[1]
        assert recorder.commands[2][1:3] == ["clear", "port"]

    def test_list_endpoints(self, ovs, recorder):
        recorder.responses["list-ports"] = [0, ["p1", "p2", "patch0"]]
        recorder.responses["Interface p1"] = [0, ["c1"]]
        recorder.responses["Interface p2"] = [0, ['"c2"']]
        recorder.responses["Interface patch0"] = [0, []]

        assert ovs.list_endpoints("br-lab") == ["c1", "c2"]


class TestDockerRuntime:
    @pytest.fixture
    def client(self):
        return mock.MagicMock()

    def test_factory(self):
        assert isinstance(ContainerRuntime.factory(ContainerRuntime.DOCKER), DockerRuntime)
        assert ContainerRuntime.factory("podman") is None

    def test_create(self, client):
        assert DockerRuntime(client).create("c1", "alpine:latest")
        client.containers.run.assert_called_once_with("alpine:latest", "sleep infinity", name="c1",
                                                      network_mode="none", privileged=True, detach=True)

    def test_create_failure(self, client):
        client.containers.run.side_effect = APIError("conflict")
        assert DockerRuntime(client).create("c1", "alpine:latest") is False

    def test_missing_container(self, client):
        client.containers.get.side_effect = NotFound("no such container")
        runtime = DockerRuntime(client)

        assert runtime.exists("c1") is False
        assert runtime.is_running("c1") is False
        assert runtime.remove("c1") is False
        assert runtime.exec("c1", "true")[0] == -1

    def test_running_container(self, client):
        container = client.containers.get.return_value
        container.status = "running"
        container.exec_run.return_value = (0, b"hello\n")
        runtime = DockerRuntime(client)

        assert runtime.exists("c1")
        assert runtime.is_running("c1")
        assert runtime.exec("c1", "echo hello") == (0, "hello\n")
        container.exec_run.assert_called_once_with(["sh", "-c", "echo hello"])
        assert runtime.remove("c1")
        container.remove.assert_called_once_with(force=True)

    def test_list(self, client):
        first, second = mock.Mock(status="running"), mock.Mock(status="exited")
        first.name, second.name = "c1", "other"
        client.containers.list.return_value = [first, second]
        runtime = DockerRuntime(client)

        assert runtime.list() == [{"name": "c1", "status": "running"}, {"name": "other", "status": "exited"}]
        assert runtime.list(["c1"]) == [{"name": "c1", "status": "running"}]
