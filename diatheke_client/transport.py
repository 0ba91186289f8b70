"""DialogTransport protocol: the RPC surface of the dialog server."""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from .messages import ASRResult, ReplyAction, SessionInput, SessionOutput, TranscribeAction, TranscribeResult


@runtime_checkable
class ASRStream(Protocol):
    """Bidirectional stream: token and audio in, one aggregated result out."""

    async def send_token(self, token: bytes) -> None:
        """Send the configuration frame that binds the stream to a session."""
        ...

    async def send_audio(self, chunk: bytes) -> None:
        """Send one chunk of audio."""
        ...

    async def close_send(self) -> None:
        """Signal that no more audio will be sent."""
        ...

    async def result(self) -> ASRResult:
        """Wait for the single recognition result."""
        ...

    async def aclose(self) -> None:
        """Release the underlying connection."""
        ...


@runtime_checkable
class TranscribeStream(Protocol):
    """Bidirectional stream: config and audio in, partial/final events out."""

    async def send_config(self, action: TranscribeAction) -> None:
        """Send the configuration frame for the transcription."""
        ...

    async def send_audio(self, chunk: bytes) -> None:
        """Send one chunk of audio."""
        ...

    async def close_send(self) -> None:
        """Signal that no more audio will be sent."""
        ...

    def events(self) -> AsyncIterator[TranscribeResult]:
        """Yield transcription events in delivery order until the server closes."""
        ...

    async def aclose(self) -> None:
        """Release the underlying connection."""
        ...


@runtime_checkable
class DialogTransport(Protocol):
    """Interface that all transports must implement."""

    async def create_session(self, model_id: str) -> SessionOutput:
        """Start a new session for the given model."""
        ...

    async def update_session(self, session_input: SessionInput) -> SessionOutput:
        """Advance a session with user or command input."""
        ...

    async def delete_session(self, token: bytes) -> None:
        """Release a session on the server."""
        ...

    async def stream_asr(self) -> ASRStream:
        """Open an audio input stream."""
        ...

    def stream_tts(self, reply: ReplyAction) -> AsyncIterator[bytes]:
        """Yield synthesized audio for a reply until the server closes the stream."""
        ...

    async def transcribe(self) -> TranscribeStream:
        """Open a standalone transcription stream."""
        ...

    async def close(self) -> None:
        """Release any resources held by the transport."""
        ...
