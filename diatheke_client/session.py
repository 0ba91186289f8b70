"""Session loop: create a session, run the server's actions, delete it."""

import logging
from collections.abc import Callable
from typing import Protocol

from .audio import FileAudioOutput, FileAudioSource
from .commands import CommandTable, ConversationContext, default_command_table
from .config import Settings
from .errors import InputClosedError, ProtocolError, TransportError
from .handlers import (
    AudioInputHandler,
    CommandHandler,
    ReplyHandler,
    TextInputHandler,
    TranscribeHandler,
)
from .messages import (
    CommandAction,
    ReplyAction,
    SessionOutput,
    TranscribeAction,
    WaitForInputAction,
)
from .transport import DialogTransport
from .transports import create_transport

logger = logging.getLogger(__name__)


class InputHandler(Protocol):
    async def wait_for_input(self, session: SessionOutput, action: WaitForInputAction) -> SessionOutput: ...


class ActionDispatcher:
    """Runs one turn's actions in order, threading the session through them."""

    def __init__(
        self,
        input_handler: InputHandler,
        reply_handler: ReplyHandler,
        command_handler: CommandHandler,
        transcribe_handler: TranscribeHandler,
    ) -> None:
        self._input = input_handler
        self._reply = reply_handler
        self._command = command_handler
        self._transcribe = transcribe_handler

    async def process_actions(
        self, session: SessionOutput, context: ConversationContext
    ) -> SessionOutput | None:
        """Execute every action of ``session``.

        Returns the newest session output, or None when the turn changed
        nothing on the server and the conversation is over.
        """
        current = session
        mutated = False
        try:
            for action in session.actions:
                if isinstance(action, WaitForInputAction):
                    try:
                        current = await self._input.wait_for_input(current, action)
                    except InputClosedError:
                        logger.info("Input closed, ending the conversation")
                        return SessionOutput.fallback(current.token)
                    if current.ended:
                        return current
                    mutated = True
                elif isinstance(action, ReplyAction):
                    await self._reply.handle_reply(action)
                elif isinstance(action, CommandAction):
                    current = await self._command.handle_command(current, action, context)
                    if current.ended:
                        return current
                    mutated = True
                elif isinstance(action, TranscribeAction):
                    await self._transcribe.handle_transcribe(action)
                else:
                    raise ProtocolError(f"unknown action: {action!r}")
        except ProtocolError as exc:
            if exc.token is None:
                exc.token = current.token
            raise

        return current if mutated else None


class SessionLoop:
    """Drives one conversation from create-session to delete-session."""

    def __init__(self, transport: DialogTransport, dispatcher: ActionDispatcher) -> None:
        self._transport = transport
        self._dispatcher = dispatcher

    async def run(self, model_id: str) -> None:
        """Hold one conversation with ``model_id`` and delete the session afterwards."""
        try:
            session = await self._transport.create_session(model_id)
        except TransportError:
            logger.exception("Could not create a session for model %s", model_id)
            return
        logger.info("Session created (model=%s)", model_id)

        context = ConversationContext()
        token = session.token
        try:
            while True:
                next_session = await self._dispatcher.process_actions(session, context)
                if next_session is None:
                    break
                session = next_session
                token = session.token
                if session.ended:
                    break
        except ProtocolError as exc:
            if exc.token is not None:
                token = exc.token
            logger.error("Protocol error, aborting session: %s", exc)
            raise
        finally:
            await self._delete(token)

    async def _delete(self, token: bytes) -> None:
        try:
            await self._transport.delete_session(token)
        except TransportError:
            logger.exception("Could not delete session")
            return
        logger.info("Session deleted")


def build_dispatcher(
    transport: DialogTransport,
    settings: Settings,
    commands: CommandTable | None = None,
    read_line: Callable[[], str] | None = None,
) -> ActionDispatcher:
    """Wire the handlers the way ``settings`` describes."""
    input_handler: InputHandler
    if settings.INPUT_MODE == "audio":
        input_handler = AudioInputHandler(
            transport, FileAudioSource(settings.AUDIO_INPUT_PATH, settings.AUDIO_CHUNK_SIZE)
        )
    else:
        input_handler = TextInputHandler(transport, read_line)

    return ActionDispatcher(
        input_handler=input_handler,
        reply_handler=ReplyHandler(transport, FileAudioOutput(settings.AUDIO_OUTPUT_DIR)),
        command_handler=CommandHandler(transport, commands or default_command_table()),
        transcribe_handler=TranscribeHandler(
            transport, FileAudioSource(settings.transcribe_audio_path, settings.AUDIO_CHUNK_SIZE)
        ),
    )


async def run_session(settings: Settings, transport: DialogTransport | None = None) -> None:
    """Run one conversation against the configured server."""
    if transport is None:
        transport = create_transport(settings)
    logger.info("Connecting to %s (%s)", settings.SERVER_ADDRESS, settings.TRANSPORT)
    try:
        await SessionLoop(transport, build_dispatcher(transport, settings)).run(settings.MODEL_ID)
    finally:
        await transport.close()
