from __future__ import annotations

import asyncio
from typing import Any

import pytest

from diatheke_client.errors import TransportError
from diatheke_client.messages import (
    ASRResult,
    ReplyAction,
    SessionInput,
    SessionOutput,
    TranscribeAction,
    TranscribeResult,
)


class FakeASRStream:
    def __init__(self, result: ASRResult, error: Exception | None = None) -> None:
        self._result = result
        self._error = error
        self._send_done = asyncio.Event()
        self.tokens: list[bytes] = []
        self.chunks: list[bytes] = []
        self.close_send_count = 0
        self.closed = False

    async def send_token(self, token: bytes) -> None:
        self.tokens.append(token)

    async def send_audio(self, chunk: bytes) -> None:
        self.chunks.append(chunk)

    async def close_send(self) -> None:
        self.close_send_count += 1
        self._send_done.set()

    async def result(self) -> ASRResult:
        if self._error is not None:
            raise self._error
        await self._send_done.wait()
        return self._result

    async def aclose(self) -> None:
        self.closed = True


class FakeTranscribeStream:
    def __init__(self, events: list[TranscribeResult] | None, error: Exception | None = None) -> None:
        self._events = events
        self._error = error
        self.configs: list[TranscribeAction] = []
        self.chunks: list[bytes] = []
        self.close_send_count = 0
        self.closed = False

    async def send_config(self, action: TranscribeAction) -> None:
        self.configs.append(action)

    async def send_audio(self, chunk: bytes) -> None:
        self.chunks.append(chunk)

    async def close_send(self) -> None:
        self.close_send_count += 1

    async def events(self):
        if self._events is None:
            # never delivers anything; only cancellation ends it
            await asyncio.Event().wait()
        for event in self._events or []:
            yield event
        if self._error is not None:
            raise self._error

    async def aclose(self) -> None:
        self.closed = True


class FakeTransport:
    """Scripted DialogTransport that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.created = SessionOutput(token=b"t0")
        self.updates: list[SessionOutput] = []
        self.fail_create = False
        self.fail_update = False
        self.fail_delete = False
        self.tts_frames = [b"\x00\x01", b"\x02\x03", b"\x04"]
        self.tts_drained = 0
        self.tts_error: Exception | None = None
        self.asr_result = ASRResult(text="hello there", confidence=0.9)
        self.asr_error: Exception | None = None
        self.asr_streams: list[FakeASRStream] = []
        self.transcribe_events: list[TranscribeResult] | None = []
        self.transcribe_error: Exception | None = None
        self.transcribe_streams: list[FakeTranscribeStream] = []
        self.closed = False

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def inputs(self) -> list[SessionInput]:
        return [arg for name, arg in self.calls if name == "update"]

    async def create_session(self, model_id: str) -> SessionOutput:
        self.calls.append(("create", model_id))
        if self.fail_create:
            raise TransportError("create failed")
        return self.created

    async def update_session(self, session_input: SessionInput) -> SessionOutput:
        self.calls.append(("update", session_input))
        if self.fail_update:
            raise TransportError("update failed")
        return self.updates.pop(0)

    async def delete_session(self, token: bytes) -> None:
        self.calls.append(("delete", token))
        if self.fail_delete:
            raise TransportError("delete failed")

    async def stream_asr(self) -> FakeASRStream:
        self.calls.append(("asr", None))
        stream = FakeASRStream(self.asr_result, self.asr_error)
        self.asr_streams.append(stream)
        return stream

    async def stream_tts(self, reply: ReplyAction):
        self.calls.append(("tts", reply.text))
        for n, frame in enumerate(self.tts_frames):
            if self.tts_error is not None and n == 1:
                raise self.tts_error
            yield frame
        self.tts_drained += 1

    async def transcribe(self) -> FakeTranscribeStream:
        self.calls.append(("transcribe", None))
        stream = FakeTranscribeStream(self.transcribe_events, self.transcribe_error)
        self.transcribe_streams.append(stream)
        return stream

    async def close(self) -> None:
        self.closed = True


class MemorySink:
    def __init__(self) -> None:
        self.frames: list[bytes] = []
        self.closed = False

    async def write(self, chunk: bytes) -> None:
        self.frames.append(chunk)

    async def close(self) -> None:
        self.closed = True


class MemoryAudioOutput:
    def __init__(self) -> None:
        self.sinks: list[MemorySink] = []

    async def open_sink(self) -> MemorySink:
        sink = MemorySink()
        self.sinks.append(sink)
        return sink


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def audio_output() -> MemoryAudioOutput:
    return MemoryAudioOutput()
