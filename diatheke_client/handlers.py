"""Handlers for each kind of server action."""

import asyncio
import inspect
import logging
from collections.abc import Callable, Coroutine
from contextlib import aclosing
from typing import Any, TypeVar

from .audio import AudioOutput, AudioSource
from .commands import CommandTable, ConversationContext
from .errors import InputClosedError, TransportError
from .messages import (
    ASRResult,
    CommandAction,
    CommandResult,
    ReplyAction,
    SessionInput,
    SessionOutput,
    TranscribeAction,
    WaitForInputAction,
)
from .transport import DialogTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROMPT = "Diatheke> "


async def run_duplex(send: Coroutine[Any, Any, None], receive: Coroutine[Any, Any, T]) -> T:
    """Run the send and receive halves of a stream and wait for both.

    If either half fails, the other is cancelled before the error is re-raised.
    """
    send_task = asyncio.create_task(send)
    receive_task = asyncio.create_task(receive)
    try:
        _, received = await asyncio.gather(send_task, receive_task)
    except BaseException:
        for task in (send_task, receive_task):
            task.cancel()
        await asyncio.gather(send_task, receive_task, return_exceptions=True)
        raise
    return received


async def _update(transport: DialogTransport, session_input: SessionInput) -> SessionOutput:
    try:
        return await transport.update_session(session_input)
    except TransportError:
        logger.exception("Session update failed")
        return SessionOutput.fallback(session_input.token)


class TextInputHandler:
    """Resolves a wait-for-input action by reading a line of text."""

    def __init__(self, transport: DialogTransport, read_line: Callable[[], str] | None = None) -> None:
        self._transport = transport
        self._read_line = read_line or (lambda: input(DEFAULT_PROMPT))

    async def read_text(self) -> str:
        """Read one line from the console, raising InputClosedError at EOF."""
        try:
            line = await asyncio.to_thread(self._read_line)
        except EOFError as exc:
            raise InputClosedError("text input closed") from exc
        if line is None:
            raise InputClosedError("text input closed")
        return line.rstrip("\r\n")

    async def wait_for_input(self, session: SessionOutput, action: WaitForInputAction) -> SessionOutput:
        """Send the next line of text to the session."""
        text = await self.read_text()
        return await _update(self._transport, SessionInput.from_text(session.token, text))


class AudioInputHandler:
    """Resolves a wait-for-input action by streaming audio to the recognizer."""

    def __init__(self, transport: DialogTransport, source: AudioSource) -> None:
        self._transport = transport
        self._source = source

    async def recognize(self, token: bytes) -> ASRResult:
        """Stream the audio source to the recognizer and return its result."""
        stream = await self._transport.stream_asr()

        async def send() -> None:
            await stream.send_token(token)
            sent = 0
            async for chunk in self._source.chunks():
                await stream.send_audio(chunk)
                sent += 1
            await stream.close_send()
            logger.debug("Sent %d audio chunks", sent)

        try:
            return await run_duplex(send(), stream.result())
        finally:
            await stream.aclose()

    async def wait_for_input(self, session: SessionOutput, action: WaitForInputAction) -> SessionOutput:
        """Record an utterance and send its transcription to the session."""
        logger.debug("Recording (immediate=%s, wake word=%s)", action.immediate, action.requires_wake_word)
        try:
            result = await self.recognize(session.token)
        except (TransportError, OSError):
            logger.exception("Audio input failed, ending the conversation")
            return SessionOutput.fallback(session.token)

        logger.info("User: %s", result.text)
        return await _update(self._transport, SessionInput.from_asr(session.token, result))


class ReplyHandler:
    """Synthesizes a reply and drains the audio into a sink."""

    def __init__(self, transport: DialogTransport, output: AudioOutput) -> None:
        self._transport = transport
        self._output = output

    async def handle_reply(self, action: ReplyAction) -> None:
        """Synthesize the reply and write every audio frame to a new sink."""
        logger.info("Reply: %s", action.text)
        try:
            sink = await self._output.open_sink()
        except OSError:
            logger.exception("Cannot open audio output for reply")
            return

        frames = 0
        try:
            async with aclosing(self._transport.stream_tts(action)) as audio:
                async for frame in audio:
                    await sink.write(frame)
                    frames += 1
        except (TransportError, OSError):
            logger.exception("Reply synthesis failed after %d frames", frames)
        finally:
            await sink.close()
        logger.debug("Reply played (%d frames)", frames)


class CommandHandler:
    """Executes server commands against a command table."""

    def __init__(self, transport: DialogTransport, table: CommandTable) -> None:
        self._transport = transport
        self._table = table

    async def execute(self, action: CommandAction, context: ConversationContext) -> CommandResult:
        """Run the command named by the action; never raises."""
        command = self._table.get(action.id)
        if command is None:
            logger.warning("Unknown command %s", action.id)
            return CommandResult(id=action.id, error=f"unknown command: {action.id}")

        try:
            outcome = command(dict(action.input_parameters), context)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:
            logger.exception("Command %s failed", action.id)
            return CommandResult(id=action.id, error=str(exc) or type(exc).__name__)

        if outcome.error:
            logger.warning("Command %s returned error: %s", action.id, outcome.error)
        else:
            logger.info("Command %s executed", action.id)
        return CommandResult(id=action.id, out_parameters=dict(outcome.out_parameters), error=outcome.error)

    async def handle_command(
        self, session: SessionOutput, action: CommandAction, context: ConversationContext
    ) -> SessionOutput:
        """Run the command and report its result to the session."""
        result = await self.execute(action, context)
        return await _update(self._transport, SessionInput.from_command(session.token, result))


class TranscribeHandler:
    """Runs a standalone transcription stream and collects the final text."""

    def __init__(
        self,
        transport: DialogTransport,
        source: AudioSource,
        on_partial: Callable[[str], None] | None = None,
    ) -> None:
        self._transport = transport
        self._source = source
        self._on_partial = on_partial or (lambda text: logger.info("Partial: %s", text))

    async def handle_transcribe(self, action: TranscribeAction) -> str:
        """Transcribe the audio source and return the concatenated final text."""
        transcript: list[str] = []
        try:
            stream = await self._transport.transcribe()
        except TransportError:
            logger.exception("Cannot open transcription stream")
            return ""

        async def send() -> None:
            await stream.send_config(action)
            async for chunk in self._source.chunks():
                await stream.send_audio(chunk)
            await stream.close_send()

        async def receive() -> None:
            async for event in stream.events():
                if event.is_partial:
                    self._on_partial(event.text)
                else:
                    transcript.append(event.text)

        try:
            await run_duplex(send(), receive())
        except (TransportError, OSError):
            logger.exception("Transcription stream failed")
        finally:
            await stream.aclose()

        text = "".join(transcript)
        logger.info("Transcript: %s", text)
        return text
