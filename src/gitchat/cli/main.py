"""
Main CLI application definition.

gitchat: natural-language git assistant

This CLI provides:
- An interactive chat loop with streamed replies
- Confirmation prompts before any state-changing git operation
- One-shot requests for scripting
- Slash commands (/status, /diff, /commit, ...)
- Layered configuration management
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Any, AsyncIterator, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from gitchat.agent.models import RoutingInfo
from gitchat.agent.session import ChatSession
from gitchat.agent.streaming import CancellationToken, ChatEngine
from gitchat.cli import utils as cli_utils
from gitchat.cli.commands import build_default_registry
from gitchat.cli.commands import config as config_commands
from gitchat.config.settings import Settings, config_service
from gitchat.git.repository import GitRepository
from gitchat.llm.providers import create_model_client
from gitchat.utils.logging import configure_from_settings, get_logger

console = Console()
logger = get_logger("cli")

EXIT_WORDS = {"exit", "quit", ":q"}

SELECTOR_CHOICES = {
    "y": "Yes - execute the operation",
    "n": "No - show manual instructions",
    "c": "Cancel",
}

app = typer.Typer(
    name="gitchat",
    help="""gitchat: drive git through natural-language chat

    \b
    COMMANDS:
      chat      - Interactive chat session
      ask       - One-shot request
      commands  - List slash commands
      config    - View and modify configuration
      version   - Show version information

    \b
    EXAMPLES:
      gitchat chat
      gitchat ask "what changed in src/app.py"
      gitchat --provider lmstudio chat
      gitchat config set streaming.chunk_size 16
    """,
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to an extra config YAML"
    ),
    provider: Optional[str] = typer.Option(
        None, "--provider", "-p", help="LLM provider (ollama|lmstudio)"
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
    repo: Optional[Path] = typer.Option(
        None, "--repo", "-r", help="Repository working directory"
    ),
    color: Optional[bool] = typer.Option(
        None, "--color/--no-color", help="Enable or disable color output"
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity (stackable)"
    ),
    quiet: int = typer.Option(
        0, "--quiet", "-q", count=True, help="Decrease verbosity (stackable)"
    ),
) -> None:
    """Global options and configuration bootstrap."""
    cli_overrides: dict[str, Any] = {"general": {}, "llm": {}, "git": {}}

    if provider:
        cli_overrides["llm"]["provider"] = provider
    if model:
        cli_overrides["llm"]["model"] = model
    if repo:
        cli_overrides["git"]["working_directory"] = str(repo)
    if color is not None:
        cli_overrides["general"]["color_enabled"] = color

    try:
        base_settings = config_service.load()
        cli_overrides["general"]["verbosity"] = cli_utils.compute_verbosity(
            base_settings.general.verbosity, verbose, quiet
        )
        settings = cli_utils.load_settings_with_cli_overrides(
            config_path=config,
            cli_overrides=cli_overrides,
        )
    except (ValueError, FileNotFoundError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    configure_from_settings(settings)
    ctx.obj = {"settings": settings}


def _settings(ctx: typer.Context) -> Settings:
    if ctx.obj and "settings" in ctx.obj:
        return ctx.obj["settings"]
    return config_service.load()


def build_session(settings: Settings) -> ChatSession:
    """Wire provider, repository, engine and registry from settings."""
    model_client = create_model_client(settings.llm)
    repository = GitRepository(
        settings.git.working_directory or None,
        timeout=settings.git.command_timeout_seconds,
    )
    engine = ChatEngine.from_settings(settings, model_client, repository)
    return ChatSession(engine, registry=build_default_registry())


def _show_progress(info: RoutingInfo) -> None:
    if info.current_step and info.current_step != "completed":
        console.print(f"[dim]… {info.current_step.replace('_', ' ')}[/dim]")


async def _render(stream: AsyncIterator[str], token: CancellationToken) -> None:
    """Print a reply as it streams; Ctrl-C cancels the stream."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False

    try:
        async for chunk in stream:
            console.print(chunk, end="", markup=False, highlight=False)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)

    console.print()
    if token.cancelled:
        console.print("[yellow](cancelled)[/yellow]")


async def _turn(session: ChatSession, text: str) -> None:
    token = CancellationToken()
    await _render(session.send(text, token, _show_progress), token)


async def _decide(session: ChatSession, choice: str) -> None:
    token = CancellationToken()
    if choice == "y":
        await _render(session.confirm(token, _show_progress), token)
    elif choice == "n":
        await _render(session.decline(token, _show_progress), token)
    else:
        session.cancel()
        console.print("Operation cancelled.")


def _prompt_decision() -> str:
    for key, label in SELECTOR_CHOICES.items():
        console.print(f"  [bold]{key}[/bold]  {label}")
    return Prompt.ask("Choose", choices=list(SELECTOR_CHOICES), default="c")


@app.command()
def chat(ctx: typer.Context) -> None:
    """Start an interactive chat session."""
    settings = _settings(ctx)
    session = build_session(settings)

    console.print(
        Panel(
            "Ask about your repository in plain language.\n"
            "Type [bold]/help[/bold] for commands, [bold]exit[/bold] to quit, "
            "Ctrl-C to stop a reply.",
            title="gitchat",
            border_style="cyan",
        )
    )

    loop = asyncio.new_event_loop()
    try:
        while True:
            try:
                text = Prompt.ask("[bold cyan]you[/bold cyan]")
            except (KeyboardInterrupt, EOFError):
                console.print()
                break

            if text.strip().lower() in EXIT_WORDS:
                break
            if not text.strip():
                continue

            loop.run_until_complete(_turn(session, text))

            while session.pending is not None:
                try:
                    choice = _prompt_decision()
                except (KeyboardInterrupt, EOFError):
                    choice = "c"
                loop.run_until_complete(_decide(session, choice))
    finally:
        loop.run_until_complete(session.engine.model.aclose())
        loop.close()


@app.command()
def ask(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="Request, e.g. 'show me the diff'"),
) -> None:
    """Send one request and print the reply."""
    settings = _settings(ctx)
    session = build_session(settings)

    async def run() -> None:
        try:
            await _turn(session, text)
        finally:
            await session.engine.model.aclose()

    asyncio.run(run())

    if session.pending is not None:
        console.print(
            f"[dim]Re-run with [bold]EXECUTE: {text}[/bold] to execute, "
            f"or [bold]SUGGEST: {text}[/bold] for instructions.[/dim]"
        )


@app.command()
def commands() -> None:
    """List the slash commands available in chat."""
    table = Table(title="Slash commands")
    table.add_column("Command", style="cyan")
    table.add_column("Aliases")
    table.add_column("Description")
    for command in build_default_registry().commands:
        aliases = ", ".join(f"/{a}" for a in command.aliases)
        table.add_row(f"/{command.name}", aliases, command.description)
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from gitchat import __version__

    typer.echo(f"gitchat version {__version__}")


app.add_typer(config_commands.app, name="config")


if __name__ == "__main__":
    app()
