"""mailtree command-line interface.

What:
  Provide a Typer entry point with two commands: ``parse`` reconstructs a
  stored ``.eml`` file offline, ``fetch`` searches the configured mailbox and
  streams reconstructed messages as JSON lines.

Why:
  Operators need a quick way to inspect how a problematic message is
  reconstructed (``parse``) and to export a mailbox slice for other tools
  (``fetch``) using exactly the code path the library uses.

How:
  Load the runtime configuration, apply its log level, and delegate to
  :func:`~mailtree.mail.message.parse_message` or
  :class:`~mailtree.imap.client.MailboxClient`. Results are written to
  ``stdout`` as JSON; diagnostics go to ``stderr`` through the JSON logger.

Interfaces:
  ``app`` (Typer application), ``parse``, ``fetch``, ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - Per-message errors during ``fetch`` are reported inline and do not change
    the exit code; configuration and transport failures do.
"""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from .config.loader import RuntimeConfigError, load_runtime_config
from .errors import MessageError, TransportError
from .imap.client import ImapConfig, MailboxClient
from .mail.message import parse_message
from .utils.logging import configure_logging, get_logger


app = typer.Typer(help="Fetch and reconstruct mailbox messages")

LOGGER = get_logger("mailtree.cli")


def _load_runtime(config: Optional[Path]):
    try:
        runtime = load_runtime_config(config, reload=config is not None)
    except RuntimeConfigError as exc:
        LOGGER.error("runtime_load_failed", error=str(exc))
        raise typer.Exit(code=1) from exc
    configure_logging(runtime.logging.level)
    return runtime


@app.command("parse")
def parse(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="RFC 5322 message file"),
    strict: bool = typer.Option(False, "--strict", help="Fail when any body part is malformed"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to mailtree.yaml"),
) -> None:
    """Reconstruct a stored message and print it as JSON."""

    runtime = _load_runtime(config)
    try:
        result = parse_message(
            path.read_bytes(),
            max_depth=runtime.parsing.max_depth,
            strict=strict or runtime.parsing.strict,
        )
    except MessageError as exc:
        typer.echo(json.dumps({"error": str(exc)}))
        raise typer.Exit(code=1) from exc

    payload = result.message.to_dict() if result.message is not None else {}
    if result.error is not None:
        payload["error"] = str(result.error)
    typer.echo(json.dumps(payload, indent=2))
    if result.message is None:
        raise typer.Exit(code=1)


@app.command("fetch")
def fetch(
    query: str = typer.Option("", "--query", "-q", help="Raw IMAP search expression"),
    since: Optional[datetime] = typer.Option(
        None, "--since", formats=["%Y-%m-%d"], help="Only messages that arrived on or after this day"
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to mailtree.yaml"),
) -> None:
    """Search the configured mailbox and stream messages as JSON lines."""

    runtime = _load_runtime(config)
    fetched = failed = 0
    try:
        with MailboxClient(ImapConfig(), runtime=runtime) as client:
            uids = client.search_uids(query, since)
            for result in client.fetch_uids(uids):
                fetched += 1
                if result.error is not None:
                    failed += 1
                typer.echo(json.dumps(result.to_dict()))
    except (TransportError, ValueError) as exc:
        LOGGER.error("fetch_failed", error=str(exc))
        raise typer.Exit(code=1) from exc
    LOGGER.info("fetch_completed", fetched=fetched, failed=failed)


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
