"""Shared fixtures for the SlideKit editing-state tests.

Everything runs headless: a QCoreApplication is enough for the event bus
signals and timers, and background loading is made synchronous.
"""
from __future__ import annotations

import io
import os
import sys

import pytest
from PIL import Image
from PyQt6.QtCore import QCoreApplication

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from canvas.factory import ObjectFactory
from canvas.selection import SelectionEngine
from canvas.surface import SceneSurface
from history import HistoryManager
from persistence import BackgroundLoader, SnapshotCodec
from session import EditorSession
from settings import AppSettings


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def qapp():
    """Provide a single QCoreApplication for the entire test session."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture()
def settings(tmp_path):
    """Fresh default settings whose background asset does not exist."""
    s = AppSettings()
    s.canvas.background_image = str(tmp_path / "missing-background.png")
    return s


@pytest.fixture()
def surface(qapp, settings):
    return SceneSurface(settings.canvas)


@pytest.fixture()
def factory(surface, settings):
    return ObjectFactory(surface, settings)


@pytest.fixture()
def engine(surface):
    return SelectionEngine(surface)


@pytest.fixture()
def history(surface, settings):
    return HistoryManager(surface, settings.history.max_entries)


@pytest.fixture()
def run_now():
    """Scheduler that runs deferred calls immediately."""
    def schedule(fn):
        fn()
    return schedule


@pytest.fixture()
def codec(surface, history, settings, run_now):
    """Codec over a scene already initialised with an empty restore."""
    c = SnapshotCodec(surface, history, settings, schedule=run_now)
    c.restore_snapshot("")
    return c


@pytest.fixture()
def session(qapp, settings, run_now):
    return EditorSession(settings, schedule=run_now)


@pytest.fixture()
def recorder(surface):
    """Collect every event published on the surface's bus."""
    events = []
    surface.bus.subscribe(lambda event: events.append(event))
    return events


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def png_bytes(width: int = 40, height: int = 20, mode: str = "RGB", color=(200, 30, 30)) -> bytes:
    """Encode a solid image as PNG."""
    buf = io.BytesIO()
    Image.new(mode, (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def write_png(path, width: int = 64, height: int = 36) -> str:
    Image.new("RGB", (width, height), (10, 120, 200)).save(path, format="PNG")
    return str(path)


def background_loader(settings, path) -> BackgroundLoader:
    settings.canvas.background_image = str(path)
    return BackgroundLoader(settings.canvas)
