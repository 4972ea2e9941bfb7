from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from lsprotocol.types import ClientCapabilities

from cfls import server
from cfls.capabilities import server_capabilities
from cfls.config import Configuration, load_project_options
from cfls.exceptions import ConfigUpdateError, ConnectionTerminated
from cfls.payload_codec import encode_payload

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

app = typer.Typer(add_completion=False)


def configure_logging(level: str, log_file: Path | None = None) -> None:
    """Send logs to stderr or ``log_file``; stdout carries the protocol."""
    normalized = level.strip().upper()
    if normalized not in _LOG_LEVELS:
        raise typer.BadParameter(
            f"log level must be one of {', '.join(_LOG_LEVELS)}, got {level!r}"
        )
    if log_file is not None:
        logging.basicConfig(level=normalized, format=LOG_FORMAT, filename=str(log_file), force=True)
    else:
        logging.basicConfig(level=normalized, format=LOG_FORMAT, stream=sys.stderr, force=True)


@app.command()
def serve(
    log_level: str = typer.Option("WARNING", "--log-level", envvar="CFLS_LOG_LEVEL"),
    log_file: Optional[Path] = typer.Option(None, "--log-file"),
) -> None:
    """Run the language server over stdin/stdout."""
    configure_logging(log_level, log_file)
    try:
        exit_code = server.start()
    except ConnectionTerminated as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1)
    raise typer.Exit(code=exit_code)


@app.command()
def capabilities(
    root: Path = typer.Option(Path("."), "--root", help="Workspace root holding cfls.toml."),
) -> None:
    """Print the capabilities advertised in the initialize response."""
    root_path = root.resolve()
    config = Configuration.new(root_path, ClientCapabilities())
    project_options = load_project_options(root_path)
    if project_options:
        try:
            config = config.update(project_options)
        except ConfigUpdateError as exc:
            raise typer.BadParameter(f"invalid cfls.toml: {exc.diagnostic}") from exc
    payload = encode_payload(server_capabilities(config))
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def main() -> None:
    app()
