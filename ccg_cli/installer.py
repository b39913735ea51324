"""Settings construction for ``ccg init`` and MCP registration for ``ccg config mcp``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import __version__
from .config import ClaudeConfigStore, InvalidConfigError
from .mcp import DEFAULT_PLACEHOLDER, build_mcp_server_config, merge_mcp_servers

logger = logging.getLogger(__name__)

SUPPORTED_MODELS: tuple[str, ...] = ("gemini", "codex", "claude")
COLLABORATION_MODES: tuple[str, ...] = ("parallel", "smart", "sequential")
WORKFLOWS: tuple[str, ...] = ("dev", "frontend", "backend", "review", "debug", "test", "optimize", "commit")

DEFAULT_FRONTEND = "gemini"
DEFAULT_BACKEND = "codex"
DEFAULT_MODE = "smart"

ACE_TOOL_SERVER_NAME = "ace-tool"
ACE_TOOL_SERVER: dict[str, Any] = {
    "type": "stdio",
    "command": "npx",
    "args": ["-y", "ace-tool@latest", "--token", DEFAULT_PLACEHOLDER],
}


def default_install_dir() -> Path:
    return Path.home() / ".claude"


def parse_model_list(value: str, option_name: str = "models") -> list[str]:
    """Parse a comma separated model list such as ``"gemini,codex"``.

    Raises:
        InvalidConfigError: If the list is empty or names an unknown model.
    """

    models = [item.strip().lower() for item in value.split(",") if item.strip()]
    if not models:
        raise InvalidConfigError(f"No {option_name} given.")
    unknown = [model for model in models if model not in SUPPORTED_MODELS]
    if unknown:
        message = (
            f"Unknown {option_name}: {', '.join(unknown)}. "
            f"Expected any of: {', '.join(SUPPORTED_MODELS)}."
        )
        raise InvalidConfigError(message)
    # Keep first occurrence order, drop duplicates.
    return list(dict.fromkeys(models))


def parse_workflows(value: str) -> list[str]:
    """Parse ``"all"`` or a comma separated list of workflow names."""

    if value.strip().lower() == "all":
        return list(WORKFLOWS)
    names = [item.strip() for item in value.split(",") if item.strip()]
    unknown = [name for name in names if name not in WORKFLOWS]
    if unknown:
        message = f"Unknown workflows: {', '.join(unknown)}. Expected 'all' or any of: {', '.join(WORKFLOWS)}."
        raise InvalidConfigError(message)
    return list(dict.fromkeys(names))


def parse_mode(value: str) -> str:
    mode = value.strip().lower()
    if mode not in COLLABORATION_MODES:
        message = f"Unknown collaboration mode '{value}'. Expected one of: {', '.join(COLLABORATION_MODES)}."
        raise InvalidConfigError(message)
    return mode


@dataclass
class InitOptions:
    """Resolved values for ``ccg init``."""

    language: str
    frontend: list[str]
    backend: list[str]
    mode: str
    workflows: list[str]
    install_dir: Path


def build_settings(options: InitOptions, existing: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the settings document for ``options``.

    Top-level keys of ``existing`` that ccg does not manage are kept.
    """

    settings: dict[str, Any] = dict(existing or {})
    general = dict(settings.get("general") or {})
    general.update({"language": options.language, "version": __version__})
    settings["general"] = general
    settings["routing"] = {
        "frontend": list(options.frontend),
        "backend": list(options.backend),
        "mode": options.mode,
    }
    settings["workflows"] = list(options.workflows)
    settings["installDir"] = str(options.install_dir)
    return settings


@dataclass
class McpInstallResult:
    """Outcome of registering a server in the assistant config."""

    server_name: str
    entry: dict[str, Any]
    backup_path: Path | None


def install_ace_tool(
    store: ClaudeConfigStore,
    token: str,
    base_url: str | None = None,
    system: str | None = None,
) -> McpInstallResult:
    """Register the ace-tool MCP server with ``token`` in the assistant config.

    The existing file is backed up first; all other servers and settings are
    preserved.

    Raises:
        ConfigError: If the config cannot be parsed, has a malformed server
            map, or cannot be backed up or written.
    """

    template = dict(ACE_TOOL_SERVER)
    template["args"] = list(ACE_TOOL_SERVER["args"])
    if base_url:
        template["args"].extend(["--base-url", base_url])

    entry = build_mcp_server_config(template, token, system=system)

    merged = merge_mcp_servers(store.read(), {ACE_TOOL_SERVER_NAME: entry})
    backup_path = store.backup()
    store.write(merged)

    logger.debug("Registered MCP server %s in %s", ACE_TOOL_SERVER_NAME, store.path)
    return McpInstallResult(server_name=ACE_TOOL_SERVER_NAME, entry=entry, backup_path=backup_path)
