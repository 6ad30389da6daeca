"""
SunoBot Test Fixtures

Shared pytest fixtures for configuration, Qt application, fake time and
an in-memory keyring.
"""

import os
import sys
import pytest

# Ensure the sunobot modules are importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "sunobot"))

os.environ["QT_QPA_PLATFORM"] = "offscreen"


class FakeClock:
    """Manual clock: sleeping advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.t = start
        self.sleeps = []

    def now(self) -> float:
        return self.t

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += seconds


@pytest.fixture(scope="session")
def qt_app():
    """Create a single QApplication instance for the entire test session."""
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def config(tmp_path):
    """A ConfigStore backed by a temp file, with fast pacing."""
    from config_store import ConfigStore

    store = ConfigStore(path=str(tmp_path / "config.json"), values={
        "download_dir": str(tmp_path / "downloads"),
        "human_pacing": False,
        "selector_overrides_path": "",
    })
    return store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def waiter(clock):
    """A Waiter driven by the fake clock."""
    from automation.pacing import Waiter

    return Waiter(clock=clock.now, sleep_fn=clock.sleep, slice_s=2)


@pytest.fixture
def memory_keyring(monkeypatch):
    """Replace the system keyring with a dict."""
    import keyring

    store = {}

    def get_password(service, key):
        return store.get((service, key))

    def set_password(service, key, value):
        store[(service, key)] = value

    def delete_password(service, key):
        store.pop((service, key), None)

    monkeypatch.setattr(keyring, "get_password", get_password)
    monkeypatch.setattr(keyring, "set_password", set_password)
    monkeypatch.setattr(keyring, "delete_password", delete_password)
    yield store


@pytest.fixture
def broken_keyring(monkeypatch):
    """Make every keyring call fail like a missing backend."""
    import keyring
    from keyring.errors import KeyringError

    def fail(*args, **kwargs):
        raise KeyringError("no backend")

    monkeypatch.setattr(keyring, "get_password", fail)
    monkeypatch.setattr(keyring, "set_password", fail)
    monkeypatch.setattr(keyring, "delete_password", fail)
