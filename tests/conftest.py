"""Shared fixtures for completion engine tests."""

from unittest.mock import Mock

import pytest

from helpers import FakeServer, Typist, make_state
from lspcomplete.completion.coordinator import CompletionCoordinator
from lspcomplete.lsp.registry import ServerRegistry
from lspcomplete.settings import CompletionSettings


@pytest.fixture
def host():
    """Create a mock host editor."""
    host = Mock()
    host.window_log_message = Mock()
    host.show_popup = Mock()
    host.current_state.return_value = make_state("")
    return host


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def registry(server):
    registry = ServerRegistry()
    registry.register(server)
    return registry


@pytest.fixture
def settings():
    return CompletionSettings()


@pytest.fixture
def coordinator(host, registry, settings):
    return CompletionCoordinator(host, registry, settings)


@pytest.fixture
def typist(coordinator, host):
    return Typist(coordinator, host)
