"""Entry point and CLI wiring for the ccg command."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from . import __version__, i18n
from .config import (
    CcgSettingsStore,
    ClaudeConfigStore,
    ConfigError,
    ConfigParseError,
    InvalidConfigError,
    JsonDocumentStore,
    MCP_SERVERS_KEY,
    server_entries,
)
from .installer import (
    COLLABORATION_MODES,
    DEFAULT_BACKEND,
    DEFAULT_FRONTEND,
    DEFAULT_MODE,
    InitOptions,
    build_settings,
    default_install_dir,
    install_ace_tool,
    parse_mode,
    parse_model_list,
    parse_workflows,
)
from .mcp import NOT_WRAPPED_HINT, diagnose_mcp_config, fix_windows_mcp_config
from .platforms import get_platform_name, is_windows

BANNER = f"CCG - Claude + Codex + Gemini v{__version__}"

COMMAND_ALIASES: dict[str, str] = {"i": "init"}

SEVERITY_COLORS: dict[str, str] = {"ok": "green", "warn": "yellow", "error": "red"}


@dataclass
class CliState:
    """Per-invocation objects shared by the subcommands."""

    store: ClaudeConfigStore = field(default_factory=ClaudeConfigStore)
    settings: CcgSettingsStore = field(default_factory=CcgSettingsStore)
    system: str | None = None


class CcgCLI(click.Group):
    """Command group with short aliases and a localized help layout."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, COMMAND_ALIASES.get(cmd_name, cmd_name))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        # Report the canonical name for aliased commands.
        _, cmd, remaining = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, remaining

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        state = ctx.find_object(CliState)
        i18n.get_language(state.settings if state else None)
        formatter.write_text(click.style(BANNER, fg="cyan", bold=True))
        formatter.write_paragraph()
        super().format_help(ctx, formatter)

    def format_commands(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Render commands with usage forms instead of bare names."""

        t = i18n.t
        rows = [
            ("ccg", t("cmd.showMenu")),
            ("ccg init | i", t("cmd.init")),
            ("ccg config mcp", t("cmd.configMcp")),
            ("ccg diagnose-mcp", t("cmd.diagnoseMcp")),
            ("ccg fix-mcp", t("cmd.fixMcp")),
        ]
        with formatter.section(click.style(t("help.commands"), fg="yellow", bold=True)):
            formatter.write_dl(rows)
            formatter.write_paragraph()
            formatter.write_text(click.style(t("help.shortcuts"), dim=True))
            formatter.write_dl([("ccg i", t("cmd.quickInit"))])

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Append the init options and usage examples."""

        t = i18n.t
        init_rows = [
            ("--skip-prompt, -s", t("opt.skipPrompt")),
            ("--skip-mcp", t("opt.skipMcp")),
            ("--force, -f", t("opt.force")),
            ("--frontend, -F <models>", t("opt.frontend")),
            ("--backend, -B <models>", t("opt.backend")),
            ("--mode, -m <mode>", f"{t('opt.mode')} ({', '.join(COLLABORATION_MODES)})"),
            ("--workflows, -w <list>", t("opt.workflows")),
            ("--install-dir, -d <path>", t("opt.installDir")),
        ]
        with formatter.section(click.style(t("help.nonInteractive"), fg="yellow", bold=True)):
            formatter.write_dl(init_rows)

        examples = [
            (t("example.menu"), ["npx ccg"]),
            (t("example.init"), ["npx ccg init", "npx ccg i"]),
            (t("example.models"), ["npx ccg i --frontend gemini,codex --backend codex,gemini"]),
            (t("example.parallel"), ["npx ccg i --mode parallel"]),
        ]
        with formatter.section(click.style(t("help.examples"), fg="yellow", bold=True)):
            for description, commands in examples:
                formatter.write_text(click.style(f"# {description}", dim=True))
                for command in commands:
                    formatter.write_text(click.style(command, fg="cyan"))
                formatter.write_paragraph()


def _set_language(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is not None:
        i18n.set_language(value)
    return value


def _read_or_fail(store: JsonDocumentStore) -> dict[str, Any] | None:
    """Read ``store`` and turn parse failures into a user-facing error."""

    try:
        return store.read()
    except ConfigParseError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group(
    cls=CcgCLI,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--lang",
    "-l",
    type=click.Choice(i18n.SUPPORTED_LANGUAGES),
    is_eager=True,
    expose_value=False,
    callback=_set_language,
    help="Display language (zh-CN, en).",
)
@click.option("--verbose", is_flag=True, default=False, help="Log configuration file activity.")
@click.option("--system", envvar="CCG_SYSTEM", hidden=True, default=None)
@click.version_option(__version__, "--version", "-v", prog_name="ccg")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, system: str | None) -> None:
    """Set up the Claude + Codex + Gemini multi-model workflow."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    state = ctx.ensure_object(CliState)
    if system:
        state.system = system
    i18n.get_language(state.settings)

    if ctx.invoked_subcommand is None:
        _show_main_menu(ctx)


def _show_main_menu(ctx: click.Context) -> None:
    t = i18n.t
    entries = [
        ("1", t("cmd.init")),
        ("2", t("cmd.configMcp")),
        ("3", t("cmd.diagnoseMcp")),
        ("4", t("cmd.fixMcp")),
        ("5", t("menu.help")),
        ("0", t("menu.exit")),
    ]

    click.echo()
    click.echo(click.style(f"  {BANNER}", fg="cyan", bold=True))
    click.echo(click.style(f"  {t('menu.title')}", bold=True))
    click.echo()
    for key, label in entries:
        click.echo(f"  {click.style(key, fg='cyan')}. {label}")
    click.echo()

    choice = click.prompt(
        f"  {t('menu.choose')}",
        type=click.Choice([key for key, _ in entries]),
        show_choices=False,
        default="0",
    )

    if choice == "1":
        ctx.invoke(init_command)
    elif choice == "2":
        ctx.invoke(config_command, subcommand="mcp")
    elif choice == "3":
        ctx.invoke(diagnose_mcp_command)
    elif choice == "4":
        ctx.invoke(fix_mcp_command)
    elif choice == "5":
        click.echo(ctx.get_help())


def _resolve_init_options(
    lang: str | None,
    frontend: str | None,
    backend: str | None,
    mode: str | None,
    workflows: str | None,
    install_dir: Path | None,
    interactive: bool,
    settings: CcgSettingsStore | None = None,
) -> InitOptions:
    """Fill in missing init values from prompts or defaults and validate them."""

    if interactive:
        if frontend is None:
            frontend = click.prompt("Frontend models", default=DEFAULT_FRONTEND)
        if backend is None:
            backend = click.prompt("Backend models", default=DEFAULT_BACKEND)
        if mode is None:
            mode = click.prompt(
                "Collaboration mode",
                type=click.Choice(COLLABORATION_MODES),
                default=DEFAULT_MODE,
            )
        if workflows is None:
            workflows = click.prompt("Workflows", default="all")
        if install_dir is None:
            install_dir = Path(click.prompt("Install directory", default=str(default_install_dir())))

    return InitOptions(
        language=lang or i18n.get_language(settings),
        frontend=parse_model_list(frontend or DEFAULT_FRONTEND, "frontend models"),
        backend=parse_model_list(backend or DEFAULT_BACKEND, "backend models"),
        mode=parse_mode(mode or DEFAULT_MODE),
        workflows=parse_workflows(workflows or "all"),
        install_dir=(install_dir or default_install_dir()).expanduser(),
    )


@cli.command("init")
@click.option(
    "--lang",
    "-l",
    type=click.Choice(i18n.SUPPORTED_LANGUAGES),
    is_eager=True,
    callback=_set_language,
    help="Display language (zh-CN, en).",
)
@click.option("--force", "-f", is_flag=True, default=False, help="Overwrite existing settings.")
@click.option("--skip-prompt", "-s", is_flag=True, default=False, help="Skip all interactive prompts.")
@click.option("--skip-mcp", is_flag=True, default=False, help="Skip MCP configuration.")
@click.option("--frontend", "-F", default=None, help="Frontend models (comma separated: gemini,codex,claude).")
@click.option("--backend", "-B", default=None, help="Backend models (comma separated: codex,gemini,claude).")
@click.option("--mode", "-m", default=None, help="Collaboration mode (parallel, smart, sequential).")
@click.option("--workflows", "-w", default=None, help="Workflows to install (comma separated or 'all').")
@click.option(
    "--install-dir",
    "-d",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Installation directory (default: ~/.claude).",
)
@click.pass_obj
def init_command(
    state: CliState,
    lang: str | None = None,
    force: bool = False,
    skip_prompt: bool = False,
    skip_mcp: bool = False,
    frontend: str | None = None,
    backend: str | None = None,
    mode: str | None = None,
    workflows: str | None = None,
    install_dir: Path | None = None,
) -> None:
    """Initialize the CCG multi-model setup."""

    existing = _read_or_fail(state.settings)
    if existing is not None and not force:
        message = f"Settings already exist at {state.settings.path}."
        if skip_prompt:
            click.echo(click.style(f"  ⚠️  {message} Use --force to overwrite.", fg="yellow"))
            return
        if not click.confirm(f"{message} Overwrite?", default=False):
            click.echo(click.style("  Aborted.", fg="yellow"))
            return

    try:
        options = _resolve_init_options(
            lang,
            frontend,
            backend,
            mode,
            workflows,
            install_dir,
            interactive=not skip_prompt,
            settings=state.settings,
        )
    except InvalidConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        state.settings.write(build_settings(options, existing))
    except ConfigError as exc:
        raise click.ClickException(f"Failed to save settings: {exc}") from exc

    click.echo(click.style(f"  ✅ Settings saved to {state.settings.path}", fg="green"))
    click.echo(f"     frontend:  {', '.join(options.frontend)}")
    click.echo(f"     backend:   {', '.join(options.backend)}")
    click.echo(f"     mode:      {options.mode}")
    click.echo(f"     workflows: {', '.join(options.workflows)}")

    if skip_mcp:
        return
    if skip_prompt:
        click.echo(click.style("  Run 'ccg config mcp' to configure the ace-tool MCP server.", dim=True))
        return

    token = click.prompt(
        "ace-tool token (leave empty to skip)", default="", show_default=False, hide_input=True
    )
    if token:
        _install_ace_tool(state, token, None)
    else:
        click.echo(click.style("  Skipped MCP configuration.", dim=True))


def _install_ace_tool(state: CliState, token: str, base_url: str | None) -> None:
    try:
        result = install_ace_tool(state.store, token, base_url=base_url, system=state.system)
    except ConfigError as exc:
        raise click.ClickException(f"Failed to configure MCP: {exc}") from exc

    if result.backup_path is not None:
        click.echo(click.style(f"  Backup saved to {result.backup_path}", dim=True))
    click.echo(click.style(f"  ✅ {result.server_name} MCP server configured in {state.store.path}", fg="green"))


@cli.command("config")
@click.argument("subcommand")
@click.option("--token", default=None, help="ace-tool token; prompted for when omitted.")
@click.option("--base-url", default=None, help="Optional ace-tool service URL.")
@click.pass_obj
def config_command(
    state: CliState,
    subcommand: str,
    token: str | None = None,
    base_url: str | None = None,
) -> None:
    """Configure CCG settings (subcommands: mcp)."""

    if subcommand != "mcp":
        click.echo(click.style(f"Unknown subcommand: {subcommand}", fg="red"))
        click.echo(click.style("Available subcommands: mcp", dim=True))
        return

    if not token:
        token = click.prompt("ace-tool token", hide_input=True)
    _install_ace_tool(state, token, base_url)


@cli.command("diagnose-mcp")
@click.pass_obj
def diagnose_mcp_command(state: CliState) -> None:
    """Diagnose MCP configuration issues."""

    click.echo()
    click.echo(click.style("  🔍 MCP Configuration Diagnostics", fg="cyan", bold=True))
    click.echo()

    issues = diagnose_mcp_config(state.store, state.system)

    click.echo(click.style("  Diagnostic Results:", bold=True))
    click.echo()
    for issue in issues:
        click.echo(click.style(f"  {issue}", fg=SEVERITY_COLORS.get(issue.severity)))

    _print_server_table(state)

    if is_windows(state.system) and any(NOT_WRAPPED_HINT in issue.text for issue in issues):
        click.echo()
        click.echo(click.style("  💡 Tip: Run the following command to fix Windows MCP configuration:", fg="yellow"))
        click.echo(click.style("     npx ccg fix-mcp", dim=True))

    click.echo()


def _print_server_table(state: CliState) -> None:
    """Print configured servers; unreadable files were already reported."""

    try:
        entries = server_entries(state.store.read())
    except ConfigParseError:
        return
    except InvalidConfigError as exc:
        click.echo(click.style(f"  ⚠️  {exc}", fg="yellow"))
        return

    if not entries:
        return

    table = Table(title=f"MCP servers ({get_platform_name(state.system)})")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Target", overflow="fold")
    for entry in entries:
        table.add_row(entry.name, entry.type, entry.target)

    click.echo()
    Console().print(table)


@cli.command("fix-mcp")
@click.pass_obj
def fix_mcp_command(state: CliState) -> None:
    """Fix Windows MCP configuration issues."""

    click.echo()
    click.echo(click.style("  🔧 Fixing MCP Configuration", fg="cyan", bold=True))
    click.echo()

    if not is_windows(state.system):
        click.echo(click.style("  ⚠️  This command is only needed on Windows", fg="yellow"))
        click.echo()
        return

    config = _read_or_fail(state.store)
    if config is None:
        click.echo(click.style(f"  ❌ No {state.store.path} found", fg="red"))
        click.echo()
        return

    if not config.get(MCP_SERVERS_KEY):
        click.echo(click.style("  ⚠️  No MCP servers configured", fg="yellow"))
        click.echo()
        return

    try:
        backup_path = state.store.backup()
        state.store.write(fix_windows_mcp_config(config, state.system))
    except ConfigError as exc:
        raise click.ClickException(f"Failed to fix MCP configuration: {exc}") from exc

    if backup_path is not None:
        click.echo(click.style(f"  Backup saved to {backup_path}", dim=True))
    click.echo(click.style("  ✅ Windows MCP configuration fixed", fg="green"))
    click.echo()
    click.echo(click.style("  Run diagnostics again to verify:", dim=True))
    click.echo(click.style("     npx ccg diagnose-mcp", dim=True))
    click.echo()


def _rewrite_args_for_help(argv: list[str]) -> list[str]:
    """Rewrite arguments to support ``help`` as a subcommand.

    * ``ccg help`` → ``ccg --help``
    * ``ccg help <command>`` → ``ccg <command> --help``
    """

    if argv and argv[0] == "help":
        if len(argv) == 1:
            return ["--help"]
        return [argv[1], "--help", *argv[2:]]
    return argv


def main() -> None:
    """Execute the ccg CLI."""

    args = _rewrite_args_for_help(sys.argv[1:])
    cli.main(args=args, prog_name="ccg", standalone_mode=True)


if __name__ == "__main__":  # pragma: no cover
    main()
