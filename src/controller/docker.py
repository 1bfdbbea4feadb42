import docker
from docker.errors import DockerException, NotFound

from functions import logger_docker

from .interface import ContainerRuntime


class DockerRuntime(ContainerRuntime):
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def _get(self, name):
        try:
            return self.client.containers.get(name)
        except NotFound:
            return None

    def create(self, name, image):
        try:
            self.client.containers.run(image, "sleep infinity",
                                       name=name,
                                       network_mode="none",
                                       privileged=True,
                                       detach=True)
            return True
        except DockerException as e:
            logger_docker.error(f"Failed to create container {name}: {e}")
            return False

    def remove(self, name):
        container = self._get(name)
        if container is None:
            return False
        try:
            container.remove(force=True)
            return True
        except DockerException as e:
            logger_docker.warning(f"Failed to remove container {name}: {e}")
            return False

    def exists(self, name):
        return self._get(name) is not None

    def is_running(self, name):
        container = self._get(name)
        return container is not None and container.status == "running"

    def list(self, names=None):
        result = []
        for container in self.client.containers.list(all=True):
            if names is not None and container.name not in names:
                continue
            result.append({"name": container.name, "status": container.status})
        return result

    def exec(self, name, command):
        container = self._get(name)
        if container is None:
            return -1, f"Container {name} not found"
        exit_code, output = container.exec_run(["sh", "-c", command])
        return exit_code, output.decode(errors="replace") if output else ""
