"""Client for turn-based dialog servers."""

from .commands import CommandOutcome, CommandTable, ConversationContext
from .config import Settings
from .messages import (
    Action,
    ASRResult,
    CommandAction,
    CommandResult,
    ReplyAction,
    SessionInput,
    SessionOutput,
    TranscribeAction,
    TranscribeResult,
    WaitForInputAction,
)
from .session import ActionDispatcher, SessionLoop, run_session

__all__ = [
    "Action",
    "ASRResult",
    "ActionDispatcher",
    "CommandAction",
    "CommandOutcome",
    "CommandResult",
    "CommandTable",
    "ConversationContext",
    "ReplyAction",
    "SessionInput",
    "SessionLoop",
    "SessionOutput",
    "Settings",
    "TranscribeAction",
    "TranscribeResult",
    "WaitForInputAction",
    "run_session",
]
