"""CLI command modules and the slash-command registry."""

from gitchat.cli.commands.slash import (
    CommandKind,
    CommandRegistry,
    CommandResult,
    SlashCommand,
    build_default_registry,
)

__all__ = [
    "CommandKind",
    "CommandRegistry",
    "CommandResult",
    "SlashCommand",
    "build_default_registry",
]
