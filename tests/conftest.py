"""Shared fixtures for the engine tests."""
import pytest

from codelink.core.live_context.delivery import FileDeliverer
from codelink.core.live_context.settings import EngineSettings
from codelink.core.live_context.surface import InjectionSurface
from codelink.core.live_context.tracker import DeliveryTracker

from fakes import PROJECT_FILES, FakeDirectory, FakeDocument


@pytest.fixture
def settings():
    """Engine settings with no pacing and a short attachment window."""
    return EngineSettings(
        attachment_timeout=0.05,
        attachment_poll_interval=0.01,
        large_file_delay=0,
        between_files_delay=0,
        surface_attempts=2,
        surface_retry_interval=0,
    )


@pytest.fixture
def document():
    return FakeDocument()


@pytest.fixture
def directory():
    return FakeDirectory(PROJECT_FILES)


@pytest.fixture
def tracker():
    return DeliveryTracker()


@pytest.fixture
def surface(document, settings):
    return InjectionSurface(document, settings)


@pytest.fixture
def deliverer(surface, document, tracker, settings):
    return FileDeliverer(surface, document, tracker, settings)
