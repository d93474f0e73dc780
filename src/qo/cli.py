"""
quant-optik CLI entry point.

Usage:
    quant-optik                              # Interactive terminal
    quant-optik "explain squeezed light"     # Run one command line and exit
    quant-optik config set key value         # Configuration
    quant-optik doctor                       # Readiness checks
    quant-optik users list                   # Registered local users
"""

import asyncio
import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from qo import __version__
from qo.agent.session import Session
from qo.ui.terminal import InteractiveTerminal


BANNER = """
[bold #00FF00]   ___                    _        ___        _   _ _    [/]
[bold #00FF00]  / _ \\ _   _  __ _ _ __ | |_     / _ \\ _ __ | |_(_) | __[/]
[bold #00BFFF] | | | | | | |/ _` | '_ \\| __|___| | | | '_ \\| __| | |/ /[/]
[bold #00BFFF] | |_| | |_| | (_| | | | | ||_____| |_| | |_) | |_| |   < [/]
[bold #FFBF00]  \\__\\_\\\\__,_|\\__,_|_| |_|\\__|     \\___/| .__/ \\__|_|_|\\_\\ [/]
[bold #FFBF00]                                        |_|              [/]
"""

app = typer.Typer(
    name="quant-optik",
    help=(
        "quant-optik: a quantum optics tutor in your terminal.\n\n"
        "Common usage:\n"
        "  quant-optik\n"
        '  quant-optik "derive the Hong-Ou-Mandel dip"\n'
        "  quant-optik config show\n"
        "  quant-optik doctor"
    ),
    no_args_is_help=False,
)
console = Console()


def _configure_logging(level: str, verbose: bool = False):
    """Route library logging through rich; --verbose forces DEBUG."""
    resolved = "DEBUG" if verbose else str(level or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.WARNING),
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ─── Config subcommand ────────────────────────────────────────

config_app = typer.Typer(help="Manage quant-optik configuration")
app.add_typer(config_app, name="config")


@config_app.command("set")
def config_set(key: str, value: str):
    """Set a configuration value."""
    from qo.agent.config import Config

    cfg = Config.load()
    try:
        cfg.set(key, value)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)
    cfg.save()
    shown = "***" if "api_key" in key else value
    console.print(f"  [green]Set[/green] {key} = {shown}")


@config_app.command("get")
def config_get(key: str):
    """Get a configuration value."""
    from qo.agent.config import Config

    cfg = Config.load()
    val = cfg.get(key)
    if "api_key" in key and val:
        val = str(val)[:4] + "..."
    console.print(f"  {key} = {val}")


@config_app.command("show")
def config_show():
    """Show all configuration."""
    from qo.agent.config import Config

    console.print(Config.load().to_table())


@config_app.command("validate")
def config_validate():
    """Validate configuration and report issues."""
    from qo.agent.config import Config

    issues = Config.load().validate()
    if not issues:
        console.print("[green]Configuration is valid. No issues found.[/green]")
        return
    for issue in issues:
        console.print(f"  [yellow]-[/yellow] {issue}")
    raise typer.Exit(code=1)


@app.command("keys")
def keys_cmd():
    """Show API key setup status."""
    from qo.agent.config import Config

    console.print(Config.load().keys_table())


@app.command("doctor")
def doctor_cmd():
    """Run environment and configuration health checks."""
    from qo.agent.config import Config
    from qo.agent.doctor import has_errors, run_checks, to_table

    checks = run_checks(Config.load())
    console.print(to_table(checks))

    if has_errors(checks):
        console.print(
            "\n[red]Blocking issues found.[/red] Fix errors above, then rerun `quant-optik doctor`."
        )
        raise typer.Exit(code=1)

    console.print("\n[green]No blocking issues found.[/green]")


# ─── Users subcommand ─────────────────────────────────────────

users_app = typer.Typer(help="Inspect the local user registry")
app.add_typer(users_app, name="users")


@users_app.command("list")
def users_list():
    """List registered usernames (passwords are never shown)."""
    from qo.agent.config import Config
    from qo.agent.credentials import CredentialStore

    cfg = Config.load()
    store = CredentialStore(cfg.get("auth.store_path"))
    names = store.usernames()
    if not names:
        console.print("  [dim]No registered users.[/dim]")
        return
    for name in names:
        console.print(f"  {name}")


# ─── Main entry point ─────────────────────────────────────────


@app.command("run", hidden=True)
def run_cmd(
    line_parts: list[str] = typer.Argument(None, help="Command line to run, e.g. 'ask what is a photon'"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="LLM model to use"),
    theme: Optional[str] = typer.Option(None, "--theme", "-t", help="Color theme: green, amber, blue"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
    version: bool = typer.Option(False, "--version", "-V", help="Show version"),
):
    """
    quant-optik: a quantum optics tutor in your terminal.

    Run without arguments for the interactive terminal.
    Pass a command line to run it once and exit.
    """
    if version:
        console.print(f"quant-optik v{__version__}")
        raise typer.Exit()

    line = " ".join(line_parts).strip() if line_parts else None

    if line:
        code = run_line(line, model, theme, verbose)
        if code:
            raise typer.Exit(code=code)
    else:
        run_interactive(model, theme, verbose)


def _load_config(model: Optional[str], theme: Optional[str]):
    from qo.agent.config import Config

    cfg = Config.load()
    if model:
        cfg.set("llm.model", model)
    if theme:
        cfg.set("ui.theme", theme)
    return cfg


def run_line(line: str, model: Optional[str], theme: Optional[str], verbose: bool) -> int:
    """Dispatch a single command line. Returns the process exit code."""
    cfg = _load_config(model, theme)
    _configure_logging(cfg.get("logging.level"), verbose)

    terminal = InteractiveTerminal(session=Session(config=cfg, verbose=verbose), console=console)
    produced = asyncio.run(terminal.dispatcher.dispatch(line))
    if terminal.renderer.pending_modal:
        console.print("  [dim]Credential forms need the interactive terminal: run `quant-optik`.[/dim]")

    if produced and produced[-1].is_error:
        return 1
    return 0


def print_banner():
    """Print the startup banner."""
    console.print(BANNER)
    meta_text = Text.from_markup(
        f"[bold white]Quantum optics tutor[/]\n"
        f"[dim]v{__version__}  ·  type help for commands  ·  exit to leave[/dim]",
        justify="center",
    )
    console.print(Panel(meta_text, title="[bold #00FF00]quant-optik[/]", border_style="dim", width=60))


def run_interactive(model: Optional[str], theme: Optional[str], verbose: bool):
    """Run the interactive terminal."""
    cfg = _load_config(model, theme)
    _configure_logging(cfg.get("logging.level"), verbose)

    print_banner()
    llm_issue = cfg.llm_preflight_issue()
    if llm_issue:
        # AI commands will answer with "AI Error: ..." until this is fixed
        console.print(f"  [yellow]Warning:[/yellow] {llm_issue}")
    console.print()

    terminal = InteractiveTerminal(config=cfg, verbose=verbose, console=console)
    terminal.run()


def entry():
    """Package entry point."""
    argv = list(sys.argv[1:])
    passthrough = {
        "config",
        "keys",
        "doctor",
        "users",
        "run",
        "--help",
        "-h",
        "--install-completion",
        "--show-completion",
    }

    # Route plain invocations to hidden `run` command so:
    #   quant-optik                  -> interactive mode
    #   quant-optik "ask ..."        -> single-line mode
    # while preserving explicit subcommands like `quant-optik config ...`.
    if not argv or argv[0] not in passthrough:
        argv = ["run", *argv]

    app(args=argv, prog_name="quant-optik")


if __name__ == "__main__":
    entry()
