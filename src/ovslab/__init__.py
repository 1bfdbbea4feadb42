from .lifecycle import Lab, LabStatus
from .lock import LabLock
