"""Top-level package for the ccg CLI.

This package sets up the multi-model assistant configuration and keeps the
MCP server section of ``~/.claude.json`` working across platforms.
"""

from typing import List

__version__ = "1.0.0"

__all__: List[str] = ["__version__"]
