"""`gitchat config` subcommands."""

from __future__ import annotations

import json
from typing import Any

import typer
import yaml

from gitchat.config.settings import config_service

app = typer.Typer(name="config", help="Configuration management")

_SCOPES = {"user", "project"}


def _parse_cli_value(raw: str) -> Any:
    # JSON first so numbers, booleans and quoted strings keep their type
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered in {"none", "null"}:
            return None
        return raw


def _check_scope(scope: str) -> str:
    scope_value = scope.lower()
    if scope_value not in _SCOPES:
        raise typer.BadParameter("Scope must be 'user' or 'project'")
    return scope_value


@app.command()
def show(format: str = typer.Option("yaml", help="Output format: yaml or json")) -> None:
    """Show the effective configuration after all layers are merged."""

    data = config_service.load().model_dump()
    if format.lower() == "json":
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(yaml.safe_dump(data, sort_keys=False))


@app.command()
def get(key: str = typer.Argument(..., help="Dot path (e.g., llm.provider)")) -> None:
    """Get a configuration value by key path."""

    try:
        value = config_service.get_value(key)
    except (KeyError, ValueError) as exc:
        typer.echo(f"Unknown configuration key: {key}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(value)


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Dot path (e.g., streaming.chunk_size)"),
    value: str = typer.Argument(..., help="Value to set (JSON or plain text)"),
    scope: str = typer.Option("user", case_sensitive=False, help="Scope: user or project"),
) -> None:
    """Set a configuration value in the selected scope."""

    scope_value = _check_scope(scope)
    target = (
        config_service.user_config_path
        if scope_value == "user"
        else config_service.project_config_path
    )
    previous = target.read_text(encoding="utf-8") if target.exists() else None

    try:
        config_service.set_value(key, _parse_cli_value(value), scope=scope_value)  # type: ignore[arg-type]
        # The merged result must still validate
        config_service.load()
    except ValueError as exc:
        if previous is None:
            target.unlink(missing_ok=True)
        else:
            target.write_text(previous, encoding="utf-8")
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Set {key} in {scope_value} config ({target})")


@app.command()
def reset(
    scope: str = typer.Option("user", case_sensitive=False, help="Scope: user or project")
) -> None:
    """Remove the scoped config file to fall back to lower-priority sources."""

    scope_value = _check_scope(scope)
    config_service.reset(scope=scope_value)  # type: ignore[arg-type]
    typer.echo(f"Reset {scope_value} config")
