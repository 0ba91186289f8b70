"""Command table: map server command ids to application callables."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class ConversationContext:
    """State the application carries across commands within one session."""

    procedure_id: str | None = None
    values: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandOutcome:
    """What a command hands back: output parameters or an error message."""

    out_parameters: dict[str, str] = field(default_factory=dict)
    error: str | None = None


Command = Callable[[dict[str, str], ConversationContext], CommandOutcome]


class CommandTable:
    """Registry of commands the client knows how to execute."""

    def __init__(self, commands: dict[str, Command] | None = None) -> None:
        self._commands: dict[str, Command] = dict(commands or {})

    def register(self, command_id: str, command: Command) -> None:
        """Add or replace a command."""
        self._commands[command_id] = command

    def get(self, command_id: str) -> Command | None:
        """Look up a command, returning None for unknown ids."""
        return self._commands.get(command_id)

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._commands

    @property
    def ids(self) -> list[str]:
        """Registered command ids in sorted order."""
        return sorted(self._commands)


def set_procedure_id(params: dict[str, str], context: ConversationContext) -> CommandOutcome:
    """Remember which procedure the conversation is about."""
    name = params.get("procedure_name", "").strip()
    if not name:
        return CommandOutcome(error="missing procedure_name")
    context.procedure_id = name
    logger.info("Procedure set to %s", name)
    return CommandOutcome(out_parameters={"procedure_id": name})


def get_procedure_id(params: dict[str, str], context: ConversationContext) -> CommandOutcome:
    """Report the procedure selected earlier in the conversation."""
    if context.procedure_id is None:
        return CommandOutcome(error="no procedure selected")
    return CommandOutcome(out_parameters={"procedure_id": context.procedure_id})


BUILTIN_COMMANDS: dict[str, Command] = {
    "set_procedure_id": set_procedure_id,
    "get_procedure_id": get_procedure_id,
}


def default_command_table() -> CommandTable:
    """Build a table holding the built-in commands."""
    return CommandTable(BUILTIN_COMMANDS)
