import logging
import os
import shlex
import subprocess
import sys
from typing import Final


class Functions:
    OVSLAB_LOG: Final[str] = "OVSLAB"
    OVS_LOG: Final[str] = "OVS"
    DOCKER_LOG: Final[str] = "DOCKER"
    HOOKS_LOG: Final[str] = "HOOKS"

    TRACE: Final[str] = "TRACE"
    DEBUG: Final[str] = "DEBUG"
    INFO: Final[str] = "INFO"
    WARN: Final[str] = "WARN"
    ERROR: Final[str] = "ERROR"
    FATAL: Final[str] = "FATAL"

    @staticmethod
    def log_level(source):
        level = os.getenv(f"{source.name.upper()}_LOG_LEVEL", os.getenv("LOG_LEVEL", "")).upper()
        level_importance = {
            Functions.TRACE: logging.DEBUG,
            Functions.DEBUG: logging.DEBUG,
            Functions.INFO: logging.INFO,
            Functions.WARN: logging.WARNING,
            Functions.ERROR: logging.ERROR,
            Functions.FATAL: logging.FATAL
        }
        return level_importance[level] if level in level_importance else logging.INFO

    @staticmethod
    def setup_log(source):
        selected_level = Functions.log_level(source)

        if not source.handlers:
            log_source_handler = logging.StreamHandler(sys.stdout)
            log_source_formatter = logging.Formatter('%(name)s [%(asctime)s] %(levelname)s - %(message)s')
            log_source_handler.setFormatter(log_source_formatter)
            source.addHandler(log_source_handler)
        source.setLevel(selected_level)
        return selected_level

    @staticmethod
    def load(filename):
        with open(filename, encoding="utf-8") as content_file:
            return content_file.read()

    @staticmethod
    def run_command(log_source, command, log_output=False, log_errors=True):
        """
        Run an external command and collect its output.

        Args:
            log_source: Logger receiving stdout (when log_output) and stderr lines
            command: Argument list, or a string split with shlex
            log_output: Log every stdout line at INFO
            log_errors: Log stderr lines at WARNING; otherwise at DEBUG

        Returns:
            [return_code, stdout_lines]. return_code is -99 when the command
            could not be started at all.
        """
        if not isinstance(command, (list, tuple)):
            command = shlex.split(command)

        log_source.debug("Running: %s" % " ".join(str(part) for part in command))
        try:
            process = subprocess.run([str(part) for part in command],
                                     stdout=subprocess.PIPE,
                                     stderr=subprocess.PIPE,
                                     universal_newlines=True)
        except OSError as e:
            log_source.error(f"{command[0]}: {e}")
            return [-99, []]

        output = [line.rstrip() for line in process.stdout.splitlines()]
        if log_output:
            for line in output:
                if len(line) > 0:
                    log_source.info(line)

        for error_line in process.stderr.splitlines():
            if len(error_line.strip()) == 0:
                continue
            if log_errors:
                log_source.warning(error_line.rstrip())
            else:
                log_source.debug(error_line.rstrip())

        return [process.returncode, output]
