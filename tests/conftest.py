import os
import sys
from pathlib import Path
import pytest


@pytest.fixture(scope="session", autouse=True)
def add_src_to_path():
    # Ensure we can import modules from src/
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    sys.path.insert(0, str(src))
    yield
    # Cleanup path insertion
    try:
        sys.path.remove(str(src))
    except ValueError:
        pass


@pytest.fixture()
def sandbox(tmp_path, monkeypatch):
    # Work in an isolated temp directory
    monkeypatch.chdir(tmp_path)
    # Prune environment to a minimal safe set
    safe_env = {
        "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
        "HOME": str(tmp_path),
        "USER": "tester",
        "HOSTNAME": "testhost",
        "LANG": os.environ.get("LANG", "C"),
        "LC_ALL": os.environ.get("LC_ALL", "C"),
        "TERM": os.environ.get("TERM", "dumb"),
    }
    monkeypatch.setenv("SHUSH_TEST_SANDBOX", "1")
    monkeypatch.setenv("PATH", safe_env["PATH"])  # at least PATH is guaranteed
    # Return path and env dict for session creation
    return tmp_path, safe_env


@pytest.fixture()
def session(sandbox):
    from ops import ShellSession
    tmp_path, safe_env = sandbox
    sess = ShellSession(inherit_env=False)
    sess.env.update(safe_env)
    return sess
