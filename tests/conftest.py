"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from tests.fixtures.stores import InMemoryVersionStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the user's ~/.versiontrim config and env overrides."""
    monkeypatch.setenv("VERSIONTRIM_CONFIG", str(tmp_path / "no-config.yaml"))
    for name in list(os.environ):
        if name.startswith("VERSIONTRIM_") and name != "VERSIONTRIM_CONFIG":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store() -> InMemoryVersionStore:
    return InMemoryVersionStore()
