from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import pytest

from ccg_cli import i18n
from ccg_cli.config import ClaudeConfigStore


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: Any) -> Iterator[Path]:
    """Point every default location at a temporary home directory."""

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("CLAUDE_CONFIG_PATH", raising=False)
    monkeypatch.delenv("CCG_CONFIG_PATH", raising=False)
    monkeypatch.delenv("CCG_SYSTEM", raising=False)
    i18n.set_language(None)
    yield home
    i18n.set_language(None)


@pytest.fixture
def store(tmp_path: Path) -> ClaudeConfigStore:
    return ClaudeConfigStore(path=tmp_path / ".claude.json", backup_dir=tmp_path / "backup")
