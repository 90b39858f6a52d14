"""
Pytest configuration and fixtures for artifact cache tests.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
from tenacity import wait_none

from artcache.cache.disk_space import VolumeStat
from artcache.cache.file_cache import ContentAddressedFetcher
from artcache.config import Settings, clear_settings_cache


class FakeDisk:
    """Stand-in for the file system's free space figures.

    Every path reports ``ratio`` of ``total`` bytes free unless a
    per-path override is registered with ``set_volume``.
    """

    def __init__(self, ratio: float = 1.0, total: int = 1_000_000) -> None:
        self.ratio = ratio
        self.total = total
        self.volumes: dict[Path, VolumeStat] = {}
        self.calls: list[Path] = []

    def set_volume(self, path: Path, free: int, total: int) -> None:
        self.volumes[Path(path).absolute()] = VolumeStat(free_bytes=free, total_bytes=total)

    def __call__(self, path: Path) -> VolumeStat:
        self.calls.append(path)
        if path in self.volumes:
            return self.volumes[path]
        return VolumeStat(free_bytes=int(self.ratio * self.total), total_bytes=self.total)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def fake_disk() -> FakeDisk:
    """Provide a simulated disk with plenty of free space."""
    return FakeDisk()


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "DOWNLOAD_DIR": ".test_cache/downloads",
        "REPOSITORY_ROOT": ".test_cache/repository",
        "TARGET_FREE_SPACE_RATIO": "0.3",
        "FETCH_TIMEOUT_SECONDS": "5",
        "USER_AGENT": "artifact-cache-tests",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str], temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide a Settings instance rooted in temp_dir."""
    with patch.dict(
        os.environ,
        {
            "DOWNLOAD_DIR": str(temp_dir / "downloads"),
            "REPOSITORY_ROOT": str(temp_dir / "repository"),
        },
    ):
        clear_settings_cache()
        from artcache.config import get_settings

        settings = get_settings()
        settings.ensure_directories()
        yield settings
        clear_settings_cache()


@pytest.fixture
def no_retry_wait(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make download retries immediate."""
    monkeypatch.setattr(ContentAddressedFetcher._download.retry, "wait", wait_none())


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


class RecordingHandler(logging.Handler):
    """Keeps every record emitted on the artcache logger tree."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: int | None = None) -> list[str]:
        return [
            r.getMessage() for r in self.records if level is None or r.levelno == level
        ]


@pytest.fixture
def log_records() -> Generator[RecordingHandler, None, None]:
    """Attach a recording handler to the artcache logger.

    The artcache logger does not propagate, so caplog never sees its records.
    """
    logger = logging.getLogger("artcache")
    handler = RecordingHandler()
    previous_level = logger.level
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    yield handler
    logger.removeHandler(handler)
    logger.setLevel(previous_level)
