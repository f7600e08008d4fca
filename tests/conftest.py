"""Shared pytest fixtures"""

import pytest

from helpers import InMemoryStore, ScriptBuilder


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def script_builder():
    return ScriptBuilder()


@pytest.fixture
def workspace_dir(tmp_path):
    path = tmp_path / "workspaces"
    path.mkdir()
    return path


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return "test-key"
