"""Operating system classification helpers.

Every function takes an optional ``system`` identifier in the form reported
by :data:`sys.platform` (``"win32"``, ``"darwin"``, ``"linux"``...). When it
is omitted the running interpreter's platform is used, which keeps the
functions pure for callers (and tests) that pass an explicit value.
"""

from __future__ import annotations

import enum
import sys

# Executables that must be launched through ``cmd /c`` on Windows.
WINDOWS_WRAPPED_COMMANDS: tuple[str, ...] = ("npx", "uvx", "node", "npm", "pnpm", "yarn")

WINDOWS_SHELL = "cmd"
WINDOWS_SHELL_FLAG = "/c"


class Platform(enum.Enum):
    """Coarse operating system families."""

    WINDOWS = "Windows"
    MACOS = "macOS"
    LINUX = "Linux"
    OTHER = "other"


def _resolve(system: str | None) -> str:
    return sys.platform if system is None else system


def detect_platform(system: str | None = None) -> Platform:
    """Map an OS identifier to a :class:`Platform` family."""

    value = _resolve(system).lower()
    if value == "win32" or value.startswith("cygwin") or value == "windows":
        return Platform.WINDOWS
    if value == "darwin":
        return Platform.MACOS
    if value.startswith("linux"):
        return Platform.LINUX
    return Platform.OTHER


def is_windows(system: str | None = None) -> bool:
    return detect_platform(system) is Platform.WINDOWS


def is_macos(system: str | None = None) -> bool:
    return detect_platform(system) is Platform.MACOS


def is_linux(system: str | None = None) -> bool:
    return detect_platform(system) is Platform.LINUX


def get_platform_name(system: str | None = None) -> str:
    """Return a human readable platform name.

    Unknown platforms are reported with their raw identifier.
    """

    platform = detect_platform(system)
    if platform is Platform.OTHER:
        return _resolve(system)
    return platform.value


def get_path_separator(system: str | None = None) -> str:
    return "\\" if is_windows(system) else "/"


def get_mcp_command(command: str, system: str | None = None) -> list[str]:
    """Return the invocation for ``command`` on the given platform.

    Examples:
        >>> get_mcp_command("npx", "win32")
        ['cmd', '/c', 'npx']
        >>> get_mcp_command("npx", "darwin")
        ['npx']
    """

    if is_windows(system) and command in WINDOWS_WRAPPED_COMMANDS:
        return [WINDOWS_SHELL, WINDOWS_SHELL_FLAG, command]
    return [command]
