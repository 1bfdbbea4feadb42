"""Advisory lock serializing mutating ovslab commands against one host.

The bridge, its flow table and the endpoint containers are shared by every
invocation; two concurrent setups would interleave teardown and creation.
An exclusive, non-blocking flock on a well-known file turns the second
invocation into a LabLocked error instead.
"""

import fcntl
import os
from contextlib import contextmanager
from typing import Generator

from functions import LabLocked, logger_ovslab


class LabLock:
    def __init__(self, path: str):
        self.path = path

    @contextmanager
    def hold(self) -> Generator[None, None, None]:
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            handle = open(self.path, "a")
        except OSError as e:
            logger_ovslab.warning(f"Cannot open lock file {self.path} ({e}), running unlocked")
            yield
            return

        with handle:
            try:
                fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                raise LabLocked(self.path)
            try:
                yield
            finally:
                fcntl.flock(handle, fcntl.LOCK_UN)
