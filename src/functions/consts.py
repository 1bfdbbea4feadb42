import os
from pathlib import Path


class classproperty:
    """Decorator for class-level properties."""
    def __init__(self, func):
        self.func = func

    def __get__(self, obj, owner):
        return self.func(owner)


class Consts:
    """Paths and defaults, resolved from OVSLAB_BASE_PATH and OVSLAB_OVS_RUN_DIR."""
    _base_path = None

    DEFAULT_BRIDGE = "br-lab"
    DEFAULT_IMAGE = "nicolaka/netshoot:latest"
    DEFAULT_PLAYGROUND = "default"
    ENDPOINT_INTERFACE = "eth0"
    DEFINITION_FILE = "definition.yml"
    METADATA_MAX_LENGTH = 120

    @classproperty
    def base_path(cls):
        """Base directory holding the playgrounds tree and the lock file."""
        if cls._base_path is None:
            if os.getenv("OVSLAB_BASE_PATH"):
                default = os.getenv("OVSLAB_BASE_PATH")
            elif (Path.cwd() / "playgrounds").is_dir():
                default = str(Path.cwd())
            elif os.getuid() == 0:
                default = "/etc/ovslab"
            else:
                default = str(Path.home() / "ovslab")
            cls._base_path = default
        return cls._base_path

    @classmethod
    def reset(cls):
        """Reset cached base path to pick up environment variable changes."""
        cls._base_path = None

    @classproperty
    def playgrounds_dir(cls):
        return os.getenv("OVSLAB_PLAYGROUNDS_DIR", f"{cls.base_path}/playgrounds")

    @classproperty
    def lock_file(cls):
        return os.getenv("OVSLAB_LOCK_FILE", f"{cls.base_path}/.ovslab.lock")

    @classproperty
    def ovs_run_dir(cls):
        """Directory where ovsdb-server and ovs-vswitchd create their sockets."""
        return os.getenv("OVSLAB_OVS_RUN_DIR", "/usr/local/var/run/openvswitch")

    @classproperty
    def ovs_db_socket(cls):
        return f"{cls.ovs_run_dir}/db.sock"
