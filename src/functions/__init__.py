from .consts import Consts
from .errors import ConstructionError, DefinitionError, LabError, LabLocked, PlaygroundNotFound, SwitchNotReady
from .functions import Functions
from .lab_env import LabEnv
from .loggers import logger_docker, logger_hooks, logger_ovs, logger_ovslab
from .permissions import PermissionReconciler
