"""
Pytest configuration and fixtures for ovslab tests.

Every test gets a private base path, so lock files and ovslab.yml lookups
never touch the real system, and a fresh Consts cache.
"""

import os
import shutil
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tests.fakes import FakeRuntime, FakeSwitch  # noqa: E402

FIXTURES = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")
PLAYGROUNDS = os.path.join(FIXTURES, "playgrounds")

_test_session_dir = tempfile.mkdtemp(prefix="pytest_ovslab_")
os.environ["OVSLAB_BASE_PATH"] = _test_session_dir


_LAB_ENV_VARS = [
    "OVSLAB_BRIDGE",
    "OVSLAB_IMAGE",
    "OVSLAB_INTERFACE",
    "OVSLAB_LOCK",
    "OVSLAB_LOCK_FILE",
    "OVSLAB_METADATA_MAX_LENGTH",
    "OVSLAB_OVS_RUN_DIR",
    "OVSLAB_PLAYGROUNDS_DIR",
    "OVSLAB_SOCKET_WAIT_ATTEMPTS",
    "OVSLAB_SOCKET_WAIT_INTERVAL",
    "LOG_LEVEL",
    "OVSLAB_LOG_LEVEL",
    "OVS_LOG_LEVEL",
    "DOCKER_LOG_LEVEL",
    "HOOKS_LOG_LEVEL",
]


@pytest.fixture(scope="function", autouse=True)
def reset_consts():
    """
    Reset Consts and the OVSLAB_* environment before and after each test.

    LabEnv._yaml_to_env writes into os.environ, so values set by one test
    must not leak into the next.
    """
    from functions import Consts
    Consts.reset()
    for var in _LAB_ENV_VARS:
        os.environ.pop(var, None)
    yield
    Consts.reset()
    for var in _LAB_ENV_VARS:
        os.environ.pop(var, None)


@pytest.fixture
def switch():
    return FakeSwitch()


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def registry():
    from playground import PlaygroundRegistry
    return PlaygroundRegistry(PLAYGROUNDS)


@pytest.fixture
def lab(switch, runtime, registry, tmp_path):
    from functions import LabEnv
    from ovslab import Lab, LabLock
    return Lab(switch, runtime, registry, env=LabEnv.read(), lock=LabLock(str(tmp_path / "ovslab.lock")))


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_test_session_dir, ignore_errors=True)
