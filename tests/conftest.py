"""Shared test fixtures and configuration."""

import os
from pathlib import Path

import pytest

from doc_index_server.adapters.filesystem_repository import FakeIndexRepository, FileSystemIndexRepository
from doc_index_server.config import Settings


# Complete test environment that overrides every config value
TEST_ENV = {
    "DATA_DIR": "test-data",
    "HOST": "127.0.0.1",
    "PORT": "13000",
    "GZIP_MINIMUM_SIZE": "500",
    "DEFAULT_SEARCH_LIMIT": "10",
    "LOG_LEVEL": "info",
    "LOG_JSON": "false",
    "ACCESS_LOG": "false",
    "OTLP_TRACES_ENDPOINT": "",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset the environment to test defaults before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(data_dir=data_dir)


@pytest.fixture
def fake_repository() -> FakeIndexRepository:
    return FakeIndexRepository()


@pytest.fixture
def fs_repository(data_dir: Path) -> FileSystemIndexRepository:
    return FileSystemIndexRepository(data_dir)


@pytest.fixture
def articles() -> list[dict]:
    """Documents used by the structured query tests."""
    return [
        {"title": "Intro", "views": 10, "tag": "guide"},
        {"title": "Deep dive", "views": 20, "tag": "guide"},
        {"title": "Reference", "views": 15, "tag": "api"},
    ]
