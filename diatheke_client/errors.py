"""Exception types for the dialog client."""

from __future__ import annotations


class DialogError(Exception):
    """Base exception for the dialog client."""


class ProtocolError(DialogError):
    """The server sent something the client cannot interpret.

    Unknown action kinds and malformed payloads end the whole session.
    ``token`` is the last valid session token when it is known, so the
    session can still be deleted.
    """

    def __init__(self, message: str, *, token: bytes | None = None) -> None:
        super().__init__(message)
        self.token = token


class TransportError(DialogError):
    """An RPC or stream failed on the way to or from the server."""


class InputClosedError(DialogError):
    """The text input source was exhausted before a line could be read."""
