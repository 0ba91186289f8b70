"""Command line entry point."""

import asyncio
import logging

import typer
from pydantic import ValidationError

from .config import Settings
from .errors import ProtocolError
from .session import run_session

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="diatheke-client",
    help="Talk to a dialog server from the terminal.",
    add_completion=False,
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        force=True,
    )


@app.command()
def main(
    server: str = typer.Option(..., "--server", "-s", help="Dialog server address, e.g. ws://localhost:9000"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Include verbose messages."),
    model: str | None = typer.Option(None, "--model", "-m", help="Model id to open the session with."),
    mode: str | None = typer.Option(None, "--mode", help="Input mode: text or audio."),
    audio_input: str | None = typer.Option(None, "--audio-input", help="Raw audio file used for input."),
    output_dir: str | None = typer.Option(None, "--output-dir", help="Directory for synthesized replies."),
) -> None:
    """Run one conversation with the dialog server."""
    overrides: dict[str, object] = {"SERVER_ADDRESS": server}
    if verbose:
        overrides["LOG_LEVEL"] = "DEBUG"
    if model is not None:
        overrides["MODEL_ID"] = model
    if mode is not None:
        overrides["INPUT_MODE"] = mode
    if audio_input is not None:
        overrides["AUDIO_INPUT_PATH"] = audio_input
    if output_dir is not None:
        overrides["AUDIO_OUTPUT_DIR"] = output_dir

    try:
        settings = Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(1)
    configure_logging(settings.LOG_LEVEL)

    try:
        asyncio.run(run_session(settings))
    except ProtocolError:
        logger.exception("Session aborted")
        raise typer.Exit(1)
