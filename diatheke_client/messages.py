"""Session data model exchanged with the dialog server."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class WaitForInputAction:
    """Server is waiting for the user; the flags are timing hints only."""

    immediate: bool = False
    requires_wake_word: bool = False


@dataclass(frozen=True)
class ReplyAction:
    """Server-authored reply to be synthesized."""

    text: str
    voice_parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandAction:
    """Application-level side effect requested by the server."""

    id: str
    input_parameters: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TranscribeAction:
    """Parameters for a standalone transcription stream."""

    config: dict[str, str] = field(default_factory=dict)


Action = WaitForInputAction | ReplyAction | CommandAction | TranscribeAction


@dataclass(frozen=True)
class SessionOutput:
    """Current session token plus the actions to run before the next update."""

    token: bytes
    actions: tuple[Action, ...] = ()
    ended: bool = False

    @classmethod
    def fallback(cls, token: bytes) -> SessionOutput:
        """Output used when a handler could not reach the server.

        It keeps the last known token, carries no actions and is marked
        ``ended``: the rest of the turn is skipped and the session loop
        deletes the session with that token.
        """
        return cls(token=token, actions=(), ended=True)


@dataclass(frozen=True)
class ASRResult:
    """Aggregated recognition result of one audio input stream."""

    text: str
    confidence: float = 0.0
    timed_out: bool = False


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a command, fed back to the server."""

    id: str
    out_parameters: dict[str, str] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class TranscribeResult:
    """One event from a transcription stream."""

    text: str
    confidence: float = 0.0
    is_partial: bool = False


@dataclass(frozen=True)
class SessionInput:
    """Advances a session; exactly one of the payload fields must be set."""

    token: bytes
    text: str | None = None
    asr_result: ASRResult | None = None
    command_result: CommandResult | None = None

    def __post_init__(self) -> None:
        populated = [
            name
            for name in ("text", "asr_result", "command_result")
            if getattr(self, name) is not None
        ]
        if len(populated) != 1:
            raise ValueError(
                f"SessionInput needs exactly one of text, asr_result, command_result; got {populated or 'none'}"
            )

    @classmethod
    def from_text(cls, token: bytes, text: str) -> SessionInput:
        return cls(token=token, text=text)

    @classmethod
    def from_asr(cls, token: bytes, result: ASRResult) -> SessionInput:
        return cls(token=token, asr_result=result)

    @classmethod
    def from_command(cls, token: bytes, result: CommandResult) -> SessionInput:
        return cls(token=token, command_result=result)
