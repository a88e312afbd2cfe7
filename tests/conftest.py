"""Shared test fixtures for the txaudit test suite."""

from collections.abc import Generator
from io import StringIO
from pathlib import Path

import pytest
import structlog

from tests.factories import RecordingHook
from txaudit.config import get_settings
from txaudit.config.settings import set_toml_config
from txaudit.transactions import Coordinator


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def output() -> StringIO:
    """In-memory sink for backend output."""
    return StringIO()


@pytest.fixture
def recorder() -> RecordingHook:
    return RecordingHook()


@pytest.fixture
def coordinator(recorder: RecordingHook, output: StringIO) -> Coordinator:
    """Coordinator writing to memory with a recording hook attached."""
    return Coordinator(
        hooks=[recorder],
        default_fields={"environment": "test"},
        logger_factory=lambda: structlog.PrintLogger(output),
    )


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache and loaded TOML before and after each test."""
    get_settings.cache_clear()
    set_toml_config({})
    yield
    get_settings.cache_clear()
    set_toml_config({})
