"""Shared test fixtures for dashci tests."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dashci.config import Settings
from dashci.grafana.api_client import GrafanaClient
from dashci.tools import Tools
from dashci.ui.console import Console, set_console


class FakeTools(Tools):
    """Stands in for the jsonnet and jq binaries."""

    def __init__(self):
        super().__init__()
        self.jsonnet_calls = []
        self.compacted = []

    def jsonnet(self, source, ext_str):
        self.jsonnet_calls.append((str(source), dict(ext_str)))
        return json.dumps({"title": Path(source).name, "uid": ext_str["uid"]})

    def jq_compact(self, path):
        self.compacted.append(str(path))
        with open(path, encoding="utf-8") as fh:
            return json.dumps(json.load(fh), separators=(",", ":"))


@pytest.fixture(autouse=True)
def quiet_console():
    """Fresh non-debug console for every test."""
    set_console(Console())


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Run the test from an empty directory laid out like a dashboards repo."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "dashboards" / "teamA").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def fake_tools():
    return FakeTools()


@pytest.fixture
def mock_client():
    return MagicMock(spec=GrafanaClient)


@pytest.fixture
def deploy_settings():
    """Settings with everything a deploy needs."""
    return Settings(
        branch="feature/login",
        grafana_user="admin",
        grafana_password="secret",
        servers={"dev": "https://dev.example.com/grafana", "tst": "https://tst.example.com/grafana"},
    )
