import os

import yaml

from .consts import Consts
from .functions import Functions


class LabEnv:
    @staticmethod
    def read(yaml_config=None):
        """
        Read lab settings from environment variables, optionally merged with a YAML config.

        Args:
            yaml_config: Optional dict (e.g. from ovslab.yml). YAML values take precedence.

        Returns:
            Dict with configuration settings
        """
        if yaml_config:
            LabEnv._yaml_to_env(yaml_config)

        env_vars = {
            "bridge": os.getenv("OVSLAB_BRIDGE") if os.getenv("OVSLAB_BRIDGE") else Consts.DEFAULT_BRIDGE,
            "image": os.getenv("OVSLAB_IMAGE") if os.getenv("OVSLAB_IMAGE") else Consts.DEFAULT_IMAGE,
            "interface": os.getenv("OVSLAB_INTERFACE") if os.getenv("OVSLAB_INTERFACE") else Consts.ENDPOINT_INTERFACE,
            "real_user": os.getenv("SUDO_USER") or os.getenv("USER") or "root",
            "lock": os.getenv("OVSLAB_LOCK", "true").lower() in ["true", "1", "yes"],
            "metadata_max_length": int(os.getenv("OVSLAB_METADATA_MAX_LENGTH", Consts.METADATA_MAX_LENGTH)),
        }

        env_vars["socket_wait"] = {
            "attempts": int(os.getenv("OVSLAB_SOCKET_WAIT_ATTEMPTS", 5)),
            "interval": float(os.getenv("OVSLAB_SOCKET_WAIT_INTERVAL", 0.5)),
        }

        env_vars["logLevel"] = {
            "ovslab": os.getenv("OVSLAB_LOG_LEVEL", os.getenv("LOG_LEVEL", Functions.INFO)),
            "ovs": os.getenv("OVS_LOG_LEVEL", os.getenv("LOG_LEVEL", Functions.INFO)),
            "docker": os.getenv("DOCKER_LOG_LEVEL", os.getenv("LOG_LEVEL", Functions.INFO)),
            "hooks": os.getenv("HOOKS_LOG_LEVEL", os.getenv("LOG_LEVEL", Functions.INFO)),
        }

        return env_vars

    @staticmethod
    def read_file(filename=None):
        """Read ovslab.yml from the base path (if present) and merge it into the environment."""
        filename = filename or f"{Consts.base_path}/ovslab.yml"
        if not os.path.exists(filename):
            return LabEnv.read()
        return LabEnv.read(yaml.safe_load(Functions.load(filename)) or {})

    @staticmethod
    def _yaml_to_env(yaml_config):
        """Convert YAML configuration to environment variables"""
        simple_keys = {
            "bridge": "OVSLAB_BRIDGE",
            "image": "OVSLAB_IMAGE",
            "interface": "OVSLAB_INTERFACE",
            "ovs_run_dir": "OVSLAB_OVS_RUN_DIR",
            "playgrounds_dir": "OVSLAB_PLAYGROUNDS_DIR",
            "metadata_max_length": "OVSLAB_METADATA_MAX_LENGTH",
        }
        for key, env_key in simple_keys.items():
            if key in yaml_config:
                os.environ[env_key] = str(yaml_config[key])

        if "lock" in yaml_config:
            os.environ["OVSLAB_LOCK"] = "true" if yaml_config["lock"] else "false"

        if "socket_wait" in yaml_config:
            socket_wait = yaml_config["socket_wait"]
            if "attempts" in socket_wait:
                os.environ["OVSLAB_SOCKET_WAIT_ATTEMPTS"] = str(socket_wait["attempts"])
            if "interval" in socket_wait:
                os.environ["OVSLAB_SOCKET_WAIT_INTERVAL"] = str(socket_wait["interval"])

        if "logLevel" in yaml_config:
            for source, level in yaml_config["logLevel"].items():
                os.environ[source.upper() + "_LOG_LEVEL"] = str(level)
