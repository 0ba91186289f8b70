"""Dialog transport over WebSocket with JSON framing.

Every RPC gets its own connection at ``{address}/v3/{Method}``. Requests and
responses are JSON text frames; audio travels base64-encoded inside JSON,
except synthesized speech, which the server sends as binary frames. A frame
of the form ``{"error": "..."}`` reports a server-side failure.
"""

import base64
import binascii
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from ..errors import ProtocolError, TransportError
from ..messages import (
    Action,
    ASRResult,
    CommandAction,
    ReplyAction,
    SessionInput,
    SessionOutput,
    TranscribeAction,
    TranscribeResult,
    WaitForInputAction,
)

logger = logging.getLogger(__name__)

API_PREFIX = "v3"


def encode_bytes(data: bytes) -> str:
    """Encode binary data for a JSON frame."""
    return base64.b64encode(data).decode("ascii")


def decode_bytes(value: Any) -> bytes:
    """Decode a base64 field, raising ProtocolError when it is malformed."""
    if not isinstance(value, str):
        raise ProtocolError(f"expected base64 string, got {type(value).__name__}")
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        raise ProtocolError(f"invalid base64 payload: {exc}") from exc


def _params(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProtocolError(f"expected parameter map, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items()}


def decode_action(data: Any) -> Action:
    """Decode one action entry; exactly one variant key must be present."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ProtocolError(f"malformed action: {data!r}")
    kind, body = next(iter(data.items()))
    if not isinstance(body, dict):
        raise ProtocolError(f"malformed {kind} action body: {body!r}")

    if kind == "input":
        return WaitForInputAction(
            immediate=bool(body.get("immediate", False)),
            requires_wake_word=bool(body.get("requires_wake_word", False)),
        )
    if kind == "reply":
        return ReplyAction(text=str(body.get("text", "")), voice_parameters=_params(body.get("voice")))
    if kind == "command":
        if "id" not in body:
            raise ProtocolError("command action without id")
        return CommandAction(id=str(body["id"]), input_parameters=_params(body.get("input_parameters")))
    if kind == "transcribe":
        return TranscribeAction(config=_params(body.get("config")))
    raise ProtocolError(f"unknown action kind: {kind}")


def decode_session_output(data: dict[str, Any]) -> SessionOutput:
    """Decode a session output frame into a token and its actions."""
    if "token" not in data:
        raise ProtocolError("session output without token")
    actions = data.get("actions") or []
    if not isinstance(actions, list):
        raise ProtocolError("session output actions must be a list")
    return SessionOutput(
        token=decode_bytes(data["token"]),
        actions=tuple(decode_action(a) for a in actions),
    )


def encode_session_input(session_input: SessionInput) -> dict[str, Any]:
    """Build the update-session frame for a session input."""
    msg: dict[str, Any] = {"token": encode_bytes(session_input.token)}
    if session_input.text is not None:
        msg["text"] = session_input.text
    elif session_input.asr_result is not None:
        asr = session_input.asr_result
        msg["asr"] = {"text": asr.text, "confidence": asr.confidence, "timed_out": asr.timed_out}
    elif session_input.command_result is not None:
        cmd = session_input.command_result
        msg["command"] = {"id": cmd.id, "out_parameters": cmd.out_parameters}
        if cmd.error is not None:
            msg["command"]["error"] = cmd.error
    return msg


def decode_asr_result(data: dict[str, Any]) -> ASRResult:
    """Decode the single result of an ASR stream."""
    return ASRResult(
        text=str(data.get("text", "")),
        confidence=float(data.get("confidence", 0.0)),
        timed_out=bool(data.get("timed_out", False)),
    )


def decode_transcribe_result(data: dict[str, Any]) -> TranscribeResult:
    """Decode one transcription event."""
    return TranscribeResult(
        text=str(data.get("text", "")),
        confidence=float(data.get("confidence", 0.0)),
        is_partial=bool(data.get("is_partial", False)),
    )


def _load(raw: str | bytes) -> dict[str, Any]:
    """Parse a JSON frame, raising TransportError for server error frames."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"non-JSON frame: {exc}") from exc
    if not isinstance(data, dict):
        raise ProtocolError(f"expected JSON object, got {type(data).__name__}")
    if "error" in data:
        raise TransportError(f"server error: {data['error']}")
    return data


class _ASRStream:
    """ASRStream over one WebSocket connection."""

    def __init__(self, ws: websockets.ClientConnection) -> None:
        self._ws = ws

    async def _send(self, msg: dict[str, Any]) -> None:
        try:
            await self._ws.send(json.dumps(msg))
        except WebSocketException as exc:
            raise TransportError(f"ASR stream send failed: {exc}") from exc

    async def send_token(self, token: bytes) -> None:
        await self._send({"token": encode_bytes(token)})

    async def send_audio(self, chunk: bytes) -> None:
        await self._send({"audio": encode_bytes(chunk)})

    async def close_send(self) -> None:
        await self._send({"end": True})

    async def result(self) -> ASRResult:
        try:
            raw = await self._ws.recv()
        except WebSocketException as exc:
            raise TransportError(f"ASR stream closed before a result: {exc}") from exc
        return decode_asr_result(_load(raw))

    async def aclose(self) -> None:
        await self._ws.close()


class _TranscribeStream:
    """TranscribeStream over one WebSocket connection."""

    def __init__(self, ws: websockets.ClientConnection) -> None:
        self._ws = ws

    async def _send(self, msg: dict[str, Any]) -> None:
        try:
            await self._ws.send(json.dumps(msg))
        except WebSocketException as exc:
            raise TransportError(f"transcribe stream send failed: {exc}") from exc

    async def send_config(self, action: TranscribeAction) -> None:
        await self._send({"config": action.config})

    async def send_audio(self, chunk: bytes) -> None:
        await self._send({"audio": encode_bytes(chunk)})

    async def close_send(self) -> None:
        await self._send({"end": True})

    async def events(self) -> AsyncIterator[TranscribeResult]:
        try:
            async for raw in self._ws:
                yield decode_transcribe_result(_load(raw))
        except WebSocketException as exc:
            raise TransportError(f"transcribe stream failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._ws.close()


class WebSocketTransport:
    """DialogTransport implementation speaking JSON over WebSocket."""

    def __init__(self, address: str, connect_timeout: float = 10.0) -> None:
        self._address = address.rstrip("/")
        self._connect_timeout = connect_timeout

    def _url(self, method: str) -> str:
        return f"{self._address}/{API_PREFIX}/{method}"

    async def _connect(self, method: str) -> websockets.ClientConnection:
        try:
            ws = await websockets.connect(self._url(method), open_timeout=self._connect_timeout)
        except (OSError, TimeoutError, WebSocketException) as exc:
            raise TransportError(f"cannot open {method} at {self._address}: {exc}") from exc
        logger.debug("Opened %s", method)
        return ws

    async def _unary(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        ws = await self._connect(method)
        try:
            await ws.send(json.dumps(payload))
            raw = await ws.recv()
        except WebSocketException as exc:
            raise TransportError(f"{method} failed: {exc}") from exc
        finally:
            await ws.close()
        return _load(raw)

    async def create_session(self, model_id: str) -> SessionOutput:
        return decode_session_output(await self._unary("CreateSession", {"model_id": model_id}))

    async def update_session(self, session_input: SessionInput) -> SessionOutput:
        return decode_session_output(await self._unary("UpdateSession", encode_session_input(session_input)))

    async def delete_session(self, token: bytes) -> None:
        await self._unary("DeleteSession", {"token": encode_bytes(token)})

    async def stream_asr(self) -> _ASRStream:
        return _ASRStream(await self._connect("StreamASR"))

    async def stream_tts(self, reply: ReplyAction) -> AsyncIterator[bytes]:
        ws = await self._connect("StreamTTS")
        try:
            await ws.send(json.dumps({"text": reply.text, "voice": reply.voice_parameters}))
            async for raw in ws:
                if isinstance(raw, bytes):
                    yield raw
                else:
                    _load(raw)
        except WebSocketException as exc:
            raise TransportError(f"TTS stream failed: {exc}") from exc
        finally:
            await ws.close()

    async def transcribe(self) -> _TranscribeStream:
        return _TranscribeStream(await self._connect("Transcribe"))

    async def close(self) -> None:
        """Connections are per call; nothing is held between calls."""
