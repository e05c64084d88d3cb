"""Slash commands for the chat loop.

Slash commands are an explicit entry point into the same pipeline as free
text. Each command maps to either:
- a canonical request string, re-entered into the pipeline unprefixed
- a local action (clear, help) that never reaches the pipeline

The registry is an explicit value built once with ``build_default_registry()``
and handed to the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional


class CommandKind(str, Enum):
    """What a parsed slash command resolves to."""
    REQUEST = "request"
    LOCAL = "local"
    ERROR = "error"


@dataclass
class CommandResult:
    """Outcome of parsing a slash command.

    Attributes:
        kind: request, local or error
        text: Canonical request, local message or error message
        command: Canonical command name, when one was found
    """
    kind: CommandKind
    text: str
    command: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Convert to dictionary."""
        return {"kind": self.kind.value, "text": self.text, "command": self.command}


@dataclass
class SlashCommand:
    """Definition of a slash command.

    Attributes:
        name: Command name without the slash
        description: One-line help text
        handler: Maps the argument list to a CommandResult
        aliases: Alternative names
    """
    name: str
    description: str
    handler: Callable[[List[str]], CommandResult]
    aliases: List[str] = field(default_factory=list)


class CommandRegistry:
    """Registry of slash commands and their aliases.

    Example:
        >>> registry = build_default_registry()
        >>> registry.parse("/commit login form").text
        'Create a smart commit about: login form'
        >>> registry.parse("/ROLLBACK").command
        'undo'
    """

    def __init__(self) -> None:
        self._commands: Dict[str, SlashCommand] = {}
        self._lookup: Dict[str, SlashCommand] = {}

    def register(self, command: SlashCommand) -> None:
        """Register a command under its name and aliases.

        Raises:
            ValueError: If the name or an alias is already taken
        """
        for key in [command.name, *command.aliases]:
            key = key.lower()
            if key in self._lookup:
                raise ValueError(
                    f"Command '/{key}' conflicts with existing command '/{self._lookup[key].name}'"
                )
        self._commands[command.name.lower()] = command
        for key in [command.name, *command.aliases]:
            self._lookup[key.lower()] = command

    def get(self, name: str) -> Optional[SlashCommand]:
        return self._lookup.get(name.lower().lstrip("/"))

    @property
    def commands(self) -> List[SlashCommand]:
        return sorted(self._commands.values(), key=lambda c: c.name)

    @staticmethod
    def is_command(text: str) -> bool:
        return text.strip().startswith("/")

    def parse(self, text: str) -> CommandResult:
        """Resolve slash-command input.

        Args:
            text: Raw input starting with ``/``

        Returns:
            CommandResult; unknown or malformed input yields kind ``error``
        """
        stripped = text.strip()
        if not stripped.startswith("/") or len(stripped) == 1 or stripped[1].isspace():
            return CommandResult(CommandKind.ERROR, "Invalid command format")

        parts = stripped[1:].split()
        name, args = parts[0].lower(), parts[1:]
        command = self._lookup.get(name)
        if command is None:
            return CommandResult(CommandKind.ERROR, f"Unknown command: /{name}")

        result = command.handler(args)
        result.command = command.name
        return result

    def suggestions(self, prefix: str) -> List[SlashCommand]:
        """Commands whose name starts with the typed prefix."""
        if not prefix.startswith("/"):
            return []
        query = prefix[1:].lower()
        return [c for c in self.commands if c.name.startswith(query)]

    def help_text(self) -> str:
        lines = [f"/{c.name.ljust(12)} {c.description}" for c in self.commands]
        return "Available commands:\n\n" + "\n".join(lines)


def _request(text: str) -> CommandResult:
    return CommandResult(CommandKind.REQUEST, text)


def build_default_registry() -> CommandRegistry:
    """Build the registry with the built-in commands."""
    registry = CommandRegistry()

    registry.register(SlashCommand(
        "status",
        "Analyze git repository status",
        lambda args: _request("Show me the current git status with analysis"),
    ))
    registry.register(SlashCommand(
        "diff",
        "Analyze current changes",
        lambda args: _request("Show me what has changed and analyze the differences"),
    ))
    registry.register(SlashCommand(
        "commit",
        "Smart commit with auto-generated message",
        lambda args: _request(
            "Create a smart commit" + (f" about: {' '.join(args)}" if args else "")
        ),
    ))
    registry.register(SlashCommand(
        "branch",
        "Manage git branches",
        lambda args: _request(
            f"Help me work with branch: {args[0]}" if args
            else "Show me all branches and their status"
        ),
    ))
    registry.register(SlashCommand(
        "stash",
        "Manage git stash",
        lambda args: _request(f"Help me with git stash {args[0] if args else 'list'}"),
    ))
    registry.register(SlashCommand(
        "remote",
        "Manage remote repositories",
        lambda args: _request("Show me remote repositories and their status"),
    ))
    registry.register(SlashCommand(
        "review",
        "Perform intelligent code review",
        lambda args: _request("Please review my code and provide feedback"),
    ))
    registry.register(SlashCommand(
        "undo",
        "Undo last Git operation",
        lambda args: _request(
            f"Help me undo or revert: {' '.join(args) if args else 'last commit'}"
        ),
        aliases=["revert", "rollback"],
    ))
    registry.register(SlashCommand(
        "clear",
        "Clear conversation history",
        lambda args: CommandResult(CommandKind.LOCAL, "Conversation cleared"),
    ))
    registry.register(SlashCommand(
        "help",
        "Show available commands",
        lambda args: CommandResult(CommandKind.LOCAL, registry.help_text()),
    ))

    return registry
