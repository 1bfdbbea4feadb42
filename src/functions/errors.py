class LabError(Exception):
    """Base class for every error the lab reports to the user"""


class PlaygroundNotFound(LabError):
    def __init__(self, name, path=None):
        self.name = name
        self.path = path
        message = f"Playground '{name}' not found"
        if path:
            message += f": {path}"
        super().__init__(message)


class DefinitionError(LabError):
    def __init__(self, name, reason):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid definition for playground '{name}': {reason}")


class SwitchNotReady(LabError):
    def __init__(self, bridge):
        self.bridge = bridge
        super().__init__(f"Bridge {bridge} does not exist")


class ConstructionError(LabError):
    """Bridge or endpoint could not be built; the lab is not usable"""


class LabLocked(LabError):
    def __init__(self, lock_file):
        self.lock_file = lock_file
        super().__init__(f"Another ovslab command is running (lock held on {lock_file})")
