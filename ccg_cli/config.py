"""Configuration file access for ccg.

This module reads, writes and backs up the assistant's JSON configuration
document (``~/.claude.json``) and ccg's own settings file. Documents are
handled as plain ``dict`` objects so that keys this tool does not know about
survive every read-modify-write cycle. A typed, read-only view over the
``mcpServers`` section is provided for presentation.
"""

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MCP_SERVERS_KEY = "mcpServers"

# Transports reached through a URL rather than a local command.
URL_SERVER_TYPES = ("sse", "http")

CLAUDE_CONFIG_ENV = "CLAUDE_CONFIG_PATH"
CCG_CONFIG_ENV = "CCG_CONFIG_PATH"

BACKUP_PREFIX = "claude-config-"


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ConfigParseError(ConfigError):
    """Raised when a configuration file exists but is not a JSON object."""


class ConfigWriteError(ConfigError):
    """Raised when a configuration file cannot be written."""


class ConfigBackupError(ConfigError):
    """Raised when a configuration file cannot be copied to the backup directory."""


class InvalidConfigError(ConfigError):
    """Raised when a configuration value is malformed or invalid."""


@dataclass
class ServerEntry:
    """Typed view of a single MCP server entry.

    Attributes:
        name: Logical name of the server as used in ``mcpServers``.
        type: Transport type, ``"stdio"``, ``"sse"`` or ``"http"``.
        command: Executable used to start the server (stdio servers only).
        args: Command-line arguments passed to the executable (stdio servers only).
        url: Endpoint URL (sse and http servers only).
        env: Environment variables provided to the server.
        startup_timeout_ms: Optional startup timeout for stdio servers.
    """

    name: str
    type: str = "stdio"
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    url: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    startup_timeout_ms: Optional[int] = None

    @property
    def target(self) -> str:
        """Return the command line or URL the entry points at."""

        if self.command is not None:
            return " ".join([self.command, *self.args])
        return self.url or ""


def _server_from_mapping(name: str, data: Any) -> ServerEntry:
    """Create a :class:`ServerEntry` from a raw ``mcpServers`` value.

    The variant is taken from ``type`` when present, otherwise inferred:
    entries with a ``command`` are stdio servers, entries with only a ``url``
    are sse servers.

    Raises:
        InvalidConfigError: If required fields are missing or of the wrong type.
    """

    if not isinstance(data, dict):
        raise InvalidConfigError(f"Server '{name}' configuration must be a JSON object.")

    raw_type = data.get("type")
    if raw_type is None:
        raw_type = "sse" if "url" in data and "command" not in data else "stdio"
    if not isinstance(raw_type, str):
        message = f"Server '{name}' has an invalid 'type' field; expected a string."
        raise InvalidConfigError(message)
    server_type = raw_type.lower()

    env_value = data.get("env") or {}
    if not isinstance(env_value, dict):
        message = f"Server '{name}' has an invalid 'env' field; expected an object or null."
        raise InvalidConfigError(message)
    env = {str(key): str(value) for key, value in env_value.items()}

    if server_type in URL_SERVER_TYPES:
        url_value = data.get("url")
        if not isinstance(url_value, str) or not url_value:
            message = f"Server '{name}' is missing a non-empty 'url' field for {server_type} server."
            raise InvalidConfigError(message)
        return ServerEntry(name=name, type=server_type, url=url_value, env=env)

    if server_type != "stdio":
        message = f"Server '{name}' has unsupported 'type' value '{raw_type}'."
        raise InvalidConfigError(message)

    command_value = data.get("command")
    if not isinstance(command_value, str) or not command_value:
        message = f"Server '{name}' is missing a non-empty 'command' field."
        raise InvalidConfigError(message)

    args_value = data.get("args", [])
    if not isinstance(args_value, list) or not all(isinstance(item, str) for item in args_value):
        message = f"Server '{name}' has an invalid 'args' field; expected a list of strings."
        raise InvalidConfigError(message)

    timeout_value = data.get("startup_timeout_ms")
    if timeout_value is not None and not isinstance(timeout_value, int):
        message = f"Server '{name}' has an invalid 'startup_timeout_ms' field; expected an integer."
        raise InvalidConfigError(message)

    return ServerEntry(
        name=name,
        type="stdio",
        command=command_value,
        args=list(args_value),
        env=env,
        startup_timeout_ms=timeout_value,
    )


def server_entries(document: Optional[Dict[str, Any]]) -> List[ServerEntry]:
    """Return typed views of every server in ``document``.

    Raises:
        InvalidConfigError: If ``mcpServers`` or one of its entries is malformed.
    """

    if not document:
        return []
    servers_obj = document.get(MCP_SERVERS_KEY)
    if servers_obj is None:
        return []
    if not isinstance(servers_obj, dict):
        raise InvalidConfigError("'mcpServers' must be a JSON object when present.")
    return [_server_from_mapping(name, value) for name, value in servers_obj.items()]


def _backup_timestamp(now: Optional[datetime] = None) -> str:
    """Return a filesystem-safe, sortable UTC timestamp.

    The format is ISO-8601 with milliseconds and a ``Z`` suffix, with ``:``
    and ``.`` replaced by ``-`` (for example ``2024-05-01T10-20-30-123Z``).
    """

    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


class JsonDocumentStore:
    """Whole-file JSON object storage.

    Each call re-reads or rewrites the complete file; nothing is cached
    between calls.
    """

    def __init__(self, path: Path) -> None:
        self.path: Path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Optional[Dict[str, Any]]:
        """Load the document.

        Returns:
            The parsed JSON object, or ``None`` when the file does not exist.

        Raises:
            ConfigParseError: If the file is unreadable, contains invalid
                JSON or does not contain a JSON object.
        """

        if not self.exists():
            logger.debug("Config file %s does not exist", self.path)
            return None

        try:
            text = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ConfigParseError(f"Config file is not valid UTF-8: {self.path}") from exc
        except OSError as exc:
            raise ConfigParseError(f"Failed to read config file: {self.path}") from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigParseError(f"Invalid JSON in config file: {self.path}") from exc

        if not isinstance(data, dict):
            raise ConfigParseError(f"Config file must contain a JSON object: {self.path}")

        logger.debug("Loaded config file %s (%d top-level keys)", self.path, len(data))
        return data

    def write(self, document: Dict[str, Any]) -> None:
        """Replace the file with ``document`` rendered as indented JSON.

        The content goes to a temporary file next to the target which then
        replaces it, so a failed write leaves the previous file in place.
        An existing file keeps its permission bits.

        Raises:
            ConfigWriteError: If the document cannot be serialized or written.
        """

        try:
            text = json.dumps(document, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise ConfigWriteError(f"Failed to serialize config for {self.path}: {exc}") from exc

        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, dir=str(self.path.parent), encoding="utf-8", suffix=".tmp"
            ) as handle:
                tmp_name = handle.name
                handle.write(text)
            if self.path.exists():
                shutil.copymode(self.path, tmp_name)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ConfigWriteError(f"Failed to write config file {self.path}: {exc}") from exc

        logger.debug("Wrote config file %s", self.path)


def default_claude_config_path() -> Path:
    """Return the assistant config path, honouring ``CLAUDE_CONFIG_PATH``."""

    override = os.environ.get(CLAUDE_CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude.json"


def default_backup_dir() -> Path:
    return Path.home() / ".claude" / "backup"


def default_ccg_config_path() -> Path:
    """Return ccg's settings path, honouring ``CCG_CONFIG_PATH``."""

    override = os.environ.get(CCG_CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude" / ".ccg" / "config.json"


class ClaudeConfigStore(JsonDocumentStore):
    """Access to the assistant's ``~/.claude.json`` document and its backups."""

    def __init__(self, path: Optional[Path] = None, backup_dir: Optional[Path] = None) -> None:
        super().__init__(path or default_claude_config_path())
        self.backup_dir: Path = Path(backup_dir) if backup_dir else default_backup_dir()

    def backup(self, now: Optional[datetime] = None) -> Optional[Path]:
        """Copy the current file into the backup directory.

        Returns:
            The backup path, or ``None`` when there is no file to back up.
            The backup directory is only created when a copy is made.

        Raises:
            ConfigBackupError: If the directory or the copy cannot be created.
        """

        if not self.exists():
            logger.debug("Nothing to back up at %s", self.path)
            return None

        backup_path = self.backup_dir / f"{BACKUP_PREFIX}{_backup_timestamp(now)}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.path, backup_path)
        except OSError as exc:
            raise ConfigBackupError(f"Failed to back up {self.path} to {backup_path}: {exc}") from exc

        logger.debug("Backed up %s to %s", self.path, backup_path)
        return backup_path


class CcgSettingsStore(JsonDocumentStore):
    """Access to ccg's own settings file written by ``ccg init``."""

    def __init__(self, path: Optional[Path] = None) -> None:
        super().__init__(path or default_ccg_config_path())

    def language(self) -> Optional[str]:
        """Return the configured display language, if any.

        A missing or unreadable settings file is treated as "not configured".
        """

        try:
            settings = self.read()
        except ConfigParseError as exc:
            logger.warning("Ignoring unreadable settings file: %s", exc)
            return None
        if not settings:
            return None
        general = settings.get("general")
        if isinstance(general, dict) and isinstance(general.get("language"), str):
            return general["language"]
        return None
