"""Application configuration via environment variables."""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from environment variables and .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    SERVER_ADDRESS: str = "ws://localhost:9000"
    LOG_LEVEL: str = "INFO"
    TRANSPORT: str = "websocket"
    CONNECT_TIMEOUT: float = 10.0
    MODEL_ID: str = "1"
    INPUT_MODE: Literal["text", "audio"] = "text"
    AUDIO_CHUNK_SIZE: int = 8192
    AUDIO_INPUT_PATH: str = "input.raw"
    TRANSCRIBE_AUDIO_PATH: str = ""
    AUDIO_OUTPUT_DIR: str = "."

    @field_validator("AUDIO_CHUNK_SIZE")
    @classmethod
    def _positive_chunk_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("AUDIO_CHUNK_SIZE must be positive")
        return value

    @property
    def transcribe_audio_path(self) -> str:
        """Audio used for transcription, defaulting to the input audio."""
        return self.TRANSCRIBE_AUDIO_PATH or self.AUDIO_INPUT_PATH
