from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from ccg_cli.config import ClaudeConfigStore, InvalidConfigError
from ccg_cli.mcp import (
    apply_platform_command,
    build_mcp_server_config,
    diagnose_document,
    diagnose_mcp_config,
    fix_windows_mcp_config,
    merge_mcp_servers,
)

SYSTEMS = ["win32", "darwin", "linux"]

SAMPLE_ENTRIES: list[dict[str, Any]] = [
    {"command": "npx", "args": ["-y", "pkg"]},
    {"type": "stdio", "command": "uvx", "args": ["mcp-server-fetch"], "env": {"A": "1"}},
    {"command": "node"},
    {"command": "python", "args": ["server.py"]},
    {"command": "cmd", "args": ["/c", "npx", "-y", "pkg"]},
    {"type": "sse", "url": "https://example.com/sse"},
]


def test_apply_platform_command_wraps_npx_on_windows() -> None:
    entry = {"command": "npx", "args": ["-y", "pkg"]}

    result = apply_platform_command(entry, "win32")

    assert result == {"command": "cmd", "args": ["/c", "npx", "-y", "pkg"]}
    # The input is left untouched.
    assert entry == {"command": "npx", "args": ["-y", "pkg"]}


def test_apply_platform_command_without_args() -> None:
    assert apply_platform_command({"command": "node"}, "win32") == {
        "command": "cmd",
        "args": ["/c", "node"],
    }


def test_apply_platform_command_unchanged_on_macos() -> None:
    entry = {"command": "npx", "args": ["-y", "pkg"]}
    assert apply_platform_command(entry, "darwin") == entry


@pytest.mark.parametrize("system", SYSTEMS)
@pytest.mark.parametrize("entry", SAMPLE_ENTRIES)
def test_apply_platform_command_is_idempotent(entry: dict[str, Any], system: str) -> None:
    once = apply_platform_command(entry, system)
    assert apply_platform_command(once, system) == once


@pytest.mark.parametrize("system", SYSTEMS)
def test_apply_platform_command_ignores_url_entries(system: str) -> None:
    entry = {"type": "sse", "url": "https://example.com/sse", "env": {"TOKEN": "x"}}
    assert apply_platform_command(entry, system) == entry


def test_build_mcp_server_config_replaces_placeholder_in_args() -> None:
    base = {"command": "npx", "args": ["--key", "YOUR_API_KEY"]}

    result = build_mcp_server_config(base, "sk-123", system="linux")

    assert result == {"command": "npx", "args": ["--key", "sk-123"]}
    assert base["args"] == ["--key", "YOUR_API_KEY"]


def test_build_mcp_server_config_replaces_every_occurrence() -> None:
    base = {"command": "npx", "args": ["--header=Bearer YOUR_API_KEY,YOUR_API_KEY"]}

    result = build_mcp_server_config(base, "k", system="linux")

    assert result["args"] == ["--header=Bearer k,k"]


def test_build_mcp_server_config_wraps_and_injects_on_windows() -> None:
    base = {"command": "npx", "args": ["-y", "pkg", "--token", "YOUR_API_KEY"]}

    result = build_mcp_server_config(base, "secret", system="win32")

    assert result == {
        "command": "cmd",
        "args": ["/c", "npx", "-y", "pkg", "--token", "secret"],
    }


def test_build_mcp_server_config_without_secret_only_rewrites() -> None:
    base = {"command": "npx", "args": ["--key", "YOUR_API_KEY"]}

    assert build_mcp_server_config(base, None, system="linux") == base
    assert build_mcp_server_config(base, "", system="win32") == {
        "command": "cmd",
        "args": ["/c", "npx", "--key", "YOUR_API_KEY"],
    }


def test_build_mcp_server_config_env_takes_precedence_over_args() -> None:
    base = {
        "command": "npx",
        "args": ["--key", "YOUR_API_KEY"],
        "env": {"OTHER": "1"},
    }
    snapshot = copy.deepcopy(base)

    result = build_mcp_server_config(base, "sk-123", env_var_name="API_KEY", system="linux")

    assert result["env"] == {"OTHER": "1", "API_KEY": "sk-123"}
    assert result["args"] == ["--key", "YOUR_API_KEY"]
    assert base == snapshot


def test_build_mcp_server_config_env_name_without_env_map_falls_back() -> None:
    base = {"command": "npx", "args": ["--key", "YOUR_API_KEY"]}

    result = build_mcp_server_config(base, "sk", env_var_name="API_KEY", system="linux")

    assert "env" not in result
    assert result["args"] == ["--key", "sk"]


def test_build_mcp_server_config_replaces_placeholder_in_url() -> None:
    base = {"type": "sse", "url": "https://example.com/sse?key=<KEY>"}

    result = build_mcp_server_config(base, "abc", placeholder="<KEY>", system="win32")

    assert result == {"type": "sse", "url": "https://example.com/sse?key=abc"}


def test_fix_windows_mcp_config_rewrites_command_entries_only() -> None:
    document = {
        "numStartups": 3,
        "mcpServers": {
            "fetch": {"type": "stdio", "command": "uvx", "args": ["mcp-server-fetch"]},
            "remote": {"type": "sse", "url": "https://example.com/sse"},
            "local": {"command": "python", "args": ["server.py"]},
        },
    }
    snapshot = copy.deepcopy(document)

    fixed = fix_windows_mcp_config(document, "win32")

    assert fixed["numStartups"] == 3
    assert fixed["mcpServers"]["fetch"] == {
        "type": "stdio",
        "command": "cmd",
        "args": ["/c", "uvx", "mcp-server-fetch"],
    }
    assert fixed["mcpServers"]["remote"] == snapshot["mcpServers"]["remote"]
    assert fixed["mcpServers"]["local"] == snapshot["mcpServers"]["local"]
    assert document == snapshot
    assert fix_windows_mcp_config(fixed, "win32") == fixed


def test_fix_windows_mcp_config_noop_off_windows_or_without_servers() -> None:
    document = {"mcpServers": {"fetch": {"command": "uvx", "args": []}}}
    assert fix_windows_mcp_config(document, "darwin") == document
    assert fix_windows_mcp_config({"theme": "dark"}, "win32") == {"theme": "dark"}


def test_merge_mcp_servers_preserves_unrelated_fields() -> None:
    document = {"x": {"nested": [1, 2]}, "mcpServers": {"a": {"command": "npx"}}}

    merged = merge_mcp_servers(document, {})

    assert merged["x"] == document["x"]
    assert merged["mcpServers"] == {"a": {"command": "npx"}}


def test_merge_mcp_servers_overwrites_same_name_and_keeps_others() -> None:
    document = {
        "mcpServers": {
            "a": {"command": "npx", "args": ["old"]},
            "b": {"type": "sse", "url": "https://b"},
        }
    }
    new = {"a": {"command": "uvx", "args": ["new"]}, "c": {"command": "node"}}

    merged = merge_mcp_servers(document, new)

    assert merged["mcpServers"]["a"] == {"command": "uvx", "args": ["new"]}
    assert merged["mcpServers"]["b"] == {"type": "sse", "url": "https://b"}
    assert merged["mcpServers"]["c"] == {"command": "node"}
    assert document["mcpServers"]["a"] == {"command": "npx", "args": ["old"]}


def test_merge_mcp_servers_with_missing_document() -> None:
    assert merge_mcp_servers(None, {"a": {"command": "npx"}}) == {"mcpServers": {"a": {"command": "npx"}}}
    assert merge_mcp_servers({"theme": "dark"}, {}) == {"theme": "dark", "mcpServers": {}}


def test_diagnose_document_without_servers() -> None:
    issues = diagnose_document({"theme": "dark"}, "win32")

    assert len(issues) == 1
    assert "No MCP servers configured" in issues[0].text
    assert issues[0].severity == "warn"


def test_diagnose_document_flags_unwrapped_commands_on_windows() -> None:
    document = {
        "mcpServers": {
            "fetch": {"command": "uvx", "args": []},
            "pnpm-server": {"command": "pnpm", "args": []},
            "wrapped": {"command": "cmd", "args": ["/c", "npx"]},
            "remote": {"url": "https://example.com/sse"},
        }
    }

    issues = diagnose_document(document, "win32")

    # pnpm is wrapped by the fixer but not reported by diagnostics.
    assert [issue.severity for issue in issues] == ["error"]
    assert issues[0].text.startswith("❌ fetch:")
    assert "not properly wrapped" in issues[0].text


def test_diagnose_document_looks_good_off_windows() -> None:
    document = {"mcpServers": {"fetch": {"command": "uvx", "args": []}}}

    issues = diagnose_document(document, "darwin")

    assert len(issues) == 1
    assert issues[0].severity == "ok"
    assert "looks good" in issues[0].text


def test_diagnose_mcp_config_missing_and_unparsable(tmp_path: Path) -> None:
    store = ClaudeConfigStore(path=tmp_path / ".claude.json", backup_dir=tmp_path / "backup")

    missing = diagnose_mcp_config(store, "win32")
    assert len(missing) == 1
    assert missing[0].severity == "error"
    assert "does not exist" in missing[0].text

    store.path.write_text("{not json", encoding="utf-8")
    broken = diagnose_mcp_config(store, "win32")
    assert len(broken) == 1
    assert "Failed to parse" in broken[0].text


def test_diagnose_mcp_config_reads_file(tmp_path: Path) -> None:
    store = ClaudeConfigStore(path=tmp_path / ".claude.json", backup_dir=tmp_path / "backup")
    store.path.write_text(json.dumps({"numStartups": 1}), encoding="utf-8")

    issues = diagnose_mcp_config(store, "linux")

    assert len(issues) == 1
    assert issues[0].severity == "warn"
    assert issues[0].text.endswith("No MCP servers configured")


def test_merge_mcp_servers_rejects_non_object_server_map() -> None:
    document = {"mcpServers": ["keep-me"]}

    with pytest.raises(InvalidConfigError):
        merge_mcp_servers(document, {"a": {"command": "npx"}})

    assert document == {"mcpServers": ["keep-me"]}


def test_merge_mcp_servers_treats_null_server_map_as_empty() -> None:
    merged = merge_mcp_servers({"mcpServers": None, "x": 1}, {"a": {"command": "npx"}})

    assert merged == {"mcpServers": {"a": {"command": "npx"}}, "x": 1}


def test_diagnose_mcp_config_undecodable_file(tmp_path: Path) -> None:
    store = ClaudeConfigStore(path=tmp_path / ".claude.json", backup_dir=tmp_path / "backup")
    store.path.write_bytes(b"\xff\xfe{}")

    issues = diagnose_mcp_config(store, "win32")

    assert len(issues) == 1
    assert issues[0].severity == "error"
    assert "Failed to parse" in issues[0].text
