import logging

from .functions import Functions

logger_ovslab = logging.getLogger(Functions.OVSLAB_LOG)
logger_ovs = logging.getLogger(Functions.OVS_LOG)
logger_docker = logging.getLogger(Functions.DOCKER_LOG)
logger_hooks = logging.getLogger(Functions.HOOKS_LOG)

Functions.setup_log(logger_ovslab)
Functions.setup_log(logger_ovs)
Functions.setup_log(logger_docker)
Functions.setup_log(logger_hooks)
