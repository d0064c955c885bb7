import os
import sys

import numpy as np
import pytest
from PyQt6.QtWidgets import QApplication

from polyfield.core.demo_backend import DemoDeviceBackend

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "qt: needs a Qt application instance")


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for the whole run (widgets, timers and queued signals need it)."""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv[:1])
    yield app


@pytest.fixture
def demo_backend():
    """Seeded simulated rig with no artificial latency."""
    return DemoDeviceBackend(np.random.default_rng(1234), centre_delay=0, edge_delay=0, throw_delay=0)
