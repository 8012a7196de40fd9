from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakeConnection
from lifxctl.core.registry import Registry, load_registry


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    config_dir = tmp_path / "cfg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    return config_dir / "lifxctl"


@pytest.fixture
def registry() -> Registry:
    return load_registry()


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()
