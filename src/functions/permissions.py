import grp
import os
import pwd
import stat
import time

from .consts import Consts
from .functions import Functions
from .loggers import logger_ovs


class PermissionReconciler:
    """
    Gives the invoking user's group read/write access to the OVS control sockets.

    ovs-vswitchd recreates <bridge>.mgmt with root-only ownership whenever the
    bridge is created or reconfigured, so this runs after every bridge-mutating
    call. Every failure is a warning: the lab keeps working for root.
    """

    def __init__(self, real_user=None, attempts=5, interval=0.5, run_dir=None, sleep=time.sleep):
        self.real_user = real_user or os.getenv("SUDO_USER") or os.getenv("USER") or "root"
        self.attempts = attempts
        self.interval = interval
        self.run_dir = run_dir
        self.sleep = sleep

    @staticmethod
    def from_env(env):
        return PermissionReconciler(real_user=env["real_user"],
                                    attempts=env["socket_wait"]["attempts"],
                                    interval=env["socket_wait"]["interval"])

    def socket_path(self, resource_name):
        run_dir = self.run_dir or Consts.ovs_run_dir
        if resource_name.endswith(".sock"):
            return f"{run_dir}/{resource_name}"
        return f"{run_dir}/{resource_name}.mgmt"

    def reassert_database(self):
        return self.reassert("db.sock")

    def reassert(self, resource_name):
        path = self.socket_path(resource_name)
        if not self._wait_for(path):
            logger_ovs.warning(f"Control socket not found at {path}, permissions not set")
            return False

        try:
            group_id = pwd.getpwnam(self.real_user).pw_gid
        except KeyError:
            logger_ovs.warning(f"Unknown user {self.real_user}, cannot set permissions on {path}")
            return False

        if self._apply(path, group_id):
            logger_ovs.debug(f"Permissions set on {path} for group of {self.real_user}")
            return True

        logger_ovs.warning(f"Failed to set permissions on {path}")
        return False

    def _wait_for(self, path):
        for attempt in range(self.attempts):
            if os.path.exists(path):
                return True
            if attempt < self.attempts - 1:
                self.sleep(self.interval)
        return os.path.exists(path)

    def _apply(self, path, group_id):
        if os.geteuid() == 0:
            try:
                os.chown(path, -1, group_id)
                os.chmod(path, os.stat(path).st_mode | stat.S_IRGRP | stat.S_IWGRP)
                return True
            except OSError as e:
                logger_ovs.debug(f"chown/chmod {path}: {e}")
                return False

        try:
            group_name = grp.getgrgid(group_id).gr_name
        except KeyError:
            group_name = str(group_id)

        return_code, _ = Functions.run_command(logger_ovs, ["sudo", "-n", "chgrp", group_name, path], log_errors=False)
        if return_code != 0:
            return False
        return_code, _ = Functions.run_command(logger_ovs, ["sudo", "-n", "chmod", "g+rw", path], log_errors=False)
        return return_code == 0
