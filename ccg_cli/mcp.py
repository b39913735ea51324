"""MCP server entry transformations.

Everything here works on plain JSON-compatible values and returns new
values; inputs are never modified.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any

from .config import MCP_SERVERS_KEY, ClaudeConfigStore, ConfigParseError, InvalidConfigError
from .platforms import WINDOWS_SHELL, get_mcp_command, is_windows

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER = "YOUR_API_KEY"

# Commands flagged by diagnostics. Narrower than the set the fixer wraps.
DIAGNOSED_COMMANDS: tuple[str, ...] = ("npx", "uvx", "node")

OK_MARKER = "✅"
WARN_MARKER = "⚠️"
ERROR_MARKER = "❌"

NOT_WRAPPED_HINT = "not properly wrapped"


def apply_platform_command(entry: dict[str, Any], system: str | None = None) -> dict[str, Any]:
    """Return ``entry`` with its command wrapped for the target platform.

    On Windows, ``{"command": "npx", "args": ["-y", "pkg"]}`` becomes
    ``{"command": "cmd", "args": ["/c", "npx", "-y", "pkg"]}``. Entries
    without a ``command`` (sse servers), entries already using ``cmd`` and
    every entry on other platforms come back unchanged. Applying the function
    twice gives the same result as applying it once.
    """

    config = copy.deepcopy(entry)
    command = config.get("command")
    if not command or not is_windows(system):
        return config

    invocation = get_mcp_command(command, system)
    if invocation[0] != WINDOWS_SHELL:
        return config

    config["command"] = invocation[0]
    config["args"] = [*invocation[1:], *(config.get("args") or [])]
    return config


def build_mcp_server_config(
    base_config: dict[str, Any],
    api_key: str | None = None,
    placeholder: str = DEFAULT_PLACEHOLDER,
    env_var_name: str | None = None,
    system: str | None = None,
) -> dict[str, Any]:
    """Build a server entry for the target platform with a secret injected.

    Args:
        base_config: Template entry; left untouched.
        api_key: Secret to inject. When empty only the platform rewrite runs.
        placeholder: Token replaced by ``api_key`` in ``args`` and ``url``.
        env_var_name: Environment variable receiving ``api_key``. Used only
            when the entry has an ``env`` map, and then instead of placeholder
            substitution.
        system: OS identifier, see :mod:`ccg_cli.platforms`.

    Returns:
        A new server entry.
    """

    config = apply_platform_command(base_config, system)

    if not api_key:
        return config

    env = config.get("env")
    if env_var_name and isinstance(env, dict):
        env[env_var_name] = api_key
        return config

    if isinstance(config.get("args"), list):
        config["args"] = [
            arg.replace(placeholder, api_key) if isinstance(arg, str) else arg
            for arg in config["args"]
        ]

    if isinstance(config.get("url"), str):
        config["url"] = config["url"].replace(placeholder, api_key)

    return config


def fix_windows_mcp_config(document: dict[str, Any], system: str | None = None) -> dict[str, Any]:
    """Wrap every command-based server in ``document`` for Windows.

    Off Windows, or when the document has no servers, ``document`` is
    returned as is. Otherwise a copy is returned in which only entries
    carrying a ``command`` have been rewritten.
    """

    servers = document.get(MCP_SERVERS_KEY)
    if not is_windows(system) or not isinstance(servers, dict) or not servers:
        return document

    fixed = copy.deepcopy(document)
    for name, server in fixed[MCP_SERVERS_KEY].items():
        if isinstance(server, dict) and "command" in server:
            fixed[MCP_SERVERS_KEY][name] = apply_platform_command(server, system)
    return fixed


def merge_mcp_servers(
    existing: dict[str, Any] | None,
    new_servers: dict[str, dict[str, Any]],
) -> dict[str, Any]:
    """Merge ``new_servers`` into the ``mcpServers`` map of ``existing``.

    Servers with the same name are replaced. Other servers and every other
    top-level key are kept unchanged. ``None`` is treated as an empty
    document, and a missing or null ``mcpServers`` as an empty map.

    Raises:
        InvalidConfigError: If ``mcpServers`` holds something other than an
            object, which would otherwise be lost on write.
    """

    config = copy.deepcopy(existing) if existing is not None else {MCP_SERVERS_KEY: {}}
    servers = config.get(MCP_SERVERS_KEY)
    if servers is None:
        config[MCP_SERVERS_KEY] = {}
    elif not isinstance(servers, dict):
        raise InvalidConfigError("'mcpServers' must be a JSON object when present.")

    config[MCP_SERVERS_KEY].update(copy.deepcopy(new_servers))
    return config


@dataclass(frozen=True)
class Diagnostic:
    """A diagnostic message. ``severity`` follows the leading marker."""

    text: str

    @property
    def severity(self) -> str:
        if self.text.startswith(OK_MARKER):
            return "ok"
        if self.text.startswith(WARN_MARKER):
            return "warn"
        if self.text.startswith(ERROR_MARKER):
            return "error"
        return "info"

    def __str__(self) -> str:
        return self.text


def diagnose_document(document: dict[str, Any], system: str | None = None) -> list[Diagnostic]:
    """Check a loaded document for MCP configuration problems."""

    servers = document.get(MCP_SERVERS_KEY)
    if not servers or not isinstance(servers, dict):
        return [Diagnostic(f"{WARN_MARKER}  No MCP servers configured")]

    issues: list[Diagnostic] = []
    if is_windows(system):
        for name, server in servers.items():
            if not isinstance(server, dict):
                continue
            command = server.get("command")
            if command in DIAGNOSED_COMMANDS and command != WINDOWS_SHELL:
                issues.append(
                    Diagnostic(
                        f"{ERROR_MARKER} {name}: Command {NOT_WRAPPED_HINT} "
                        "for Windows (should use cmd /c)"
                    )
                )

    if not issues:
        issues.append(Diagnostic(f"{OK_MARKER} MCP configuration looks good"))
    return issues


def diagnose_mcp_config(store: ClaudeConfigStore, system: str | None = None) -> list[Diagnostic]:
    """Diagnose the configuration file behind ``store``.

    Missing and unparsable files each produce a single error message.
    """

    if not store.exists():
        return [Diagnostic(f"{ERROR_MARKER} {store.path} does not exist")]

    try:
        document = store.read()
    except ConfigParseError as exc:
        logger.debug("Diagnostics could not parse config: %s", exc)
        return [Diagnostic(f"{ERROR_MARKER} Failed to parse {store.path}")]

    return diagnose_document(document or {}, system)
