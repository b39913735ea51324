"""Display strings for help and menu output in the supported languages."""

from __future__ import annotations

from typing import Optional

from .config import CcgSettingsStore

SUPPORTED_LANGUAGES: tuple[str, ...] = ("zh-CN", "en")
DEFAULT_LANGUAGE = "zh-CN"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "help.commands": "Commands",
        "help.options": "Options",
        "help.examples": "Examples",
        "help.shortcuts": "Shortcuts:",
        "help.nonInteractive": "Non-interactive mode (init):",
        "cmd.showMenu": "Show interactive menu (default)",
        "cmd.init": "Initialize the CCG multi-model setup",
        "cmd.configMcp": "Configure the ace-tool MCP token",
        "cmd.diagnoseMcp": "Diagnose MCP configuration issues",
        "cmd.fixMcp": "Fix Windows MCP configuration",
        "cmd.quickInit": "Quick init",
        "opt.lang": "Display language",
        "opt.force": "Overwrite existing configuration",
        "opt.skipPrompt": "Skip all interactive prompts",
        "opt.skipMcp": "Skip MCP configuration",
        "opt.frontend": "Frontend models (comma separated)",
        "opt.backend": "Backend models (comma separated)",
        "opt.mode": "Collaboration mode",
        "opt.workflows": "Workflows to install (comma separated or 'all')",
        "opt.installDir": "Installation directory",
        "example.menu": "Show the interactive menu",
        "example.init": "Run full initialization",
        "example.models": "Custom model routing",
        "example.parallel": "Parallel collaboration mode",
        "menu.title": "Main menu",
        "menu.help": "Show help",
        "menu.exit": "Exit",
        "menu.choose": "Select an option",
    },
    "zh-CN": {
        "help.commands": "命令",
        "help.options": "选项",
        "help.examples": "示例",
        "help.shortcuts": "快捷方式:",
        "help.nonInteractive": "非交互模式 (init):",
        "cmd.showMenu": "显示交互式菜单（默认）",
        "cmd.init": "初始化 CCG 多模型协作系统",
        "cmd.configMcp": "配置 ace-tool MCP Token",
        "cmd.diagnoseMcp": "诊断 MCP 配置问题",
        "cmd.fixMcp": "修复 Windows MCP 配置",
        "cmd.quickInit": "快速初始化",
        "opt.lang": "显示语言",
        "opt.force": "强制覆盖现有配置",
        "opt.skipPrompt": "跳过所有交互式提示",
        "opt.skipMcp": "跳过 MCP 配置",
        "opt.frontend": "前端模型（逗号分隔）",
        "opt.backend": "后端模型（逗号分隔）",
        "opt.mode": "协作模式",
        "opt.workflows": "要安装的工作流（逗号分隔或 'all'）",
        "opt.installDir": "安装目录",
        "example.menu": "显示交互式菜单",
        "example.init": "运行完整初始化",
        "example.models": "自定义模型",
        "example.parallel": "并行协作模式",
        "menu.title": "主菜单",
        "menu.help": "显示帮助",
        "menu.exit": "退出",
        "menu.choose": "请选择",
    },
}

_language: Optional[str] = None


def set_language(language: Optional[str]) -> None:
    """Select the display language. Unsupported values fall back to the default."""

    global _language
    if language is None:
        _language = None
    else:
        _language = language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def get_language(settings: Optional[CcgSettingsStore] = None) -> str:
    """Return the active language, reading the saved setting on first use.

    ``settings`` is the store to read from; the default settings file is
    used when it is omitted.
    """

    global _language
    if _language is None:
        saved = (settings or CcgSettingsStore()).language()
        _language = saved if saved in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE
    return _language


def t(key: str) -> str:
    """Translate ``key``; unknown keys are returned as is."""

    return MESSAGES[get_language()].get(key, MESSAGES["en"].get(key, key))
