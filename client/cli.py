#!/usr/bin/env python3

from __future__ import annotations
import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from shared.errors import ChatError
from shared.log import configure_root_logging, get_logger
from shared.message import encode
from .commands import parse_command, strip_line_ending
from .config import ClientConfig, load_config
from .ws_client import ChatClient

app = typer.Typer(help="PeerChat terminal client")
console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)


@app.command()
def preview(
    line: str = typer.Argument(..., help="Input line as typed at the prompt"),
    name: str = typer.Option("me", help="Sender name to stamp on the message"),
    addr: str = typer.Option("127.0.0.1:0", help="Sender address to stamp on the message"),
):
    """Show the frame a typed line would produce, without connecting."""
    try:
        msg = parse_command(strip_line_ending(line), name, addr)
    except ChatError as e:
        err_console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(code=1)
    console.print_json(encode(msg))


@app.command()
def run(
    server: Optional[str] = typer.Argument(None, help="Chat server host:port (default: $PEERCHAT_SERVER)"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING or ERROR"),
    max_outbound: Optional[int] = typer.Option(None, help="Bound the outbound queue (0 = unbounded)"),
    skip_malformed: bool = typer.Option(False, "--skip-malformed", help="Drop undecodable frames instead of disconnecting"),
):
    """Connect to a chat server and start chatting."""
    try:
        config = load_config(config_file) if config_file else ClientConfig.from_env()
        if server:
            config.addr = server
        if max_outbound is not None:
            config.max_outbound = max_outbound
        if skip_malformed:
            config.skip_malformed = True
        if log_level:
            config.log_level = log_level
        config.validate()
    except ChatError as e:
        err_console.print(f"[red]Config error[/]: {escape(str(e))}")
        raise typer.Exit(code=1)

    if config.log_level:
        configure_root_logging(config.log_level)

    console.print(f"[bold green]PeerChat client[/] connecting to {config.ws_url}", highlight=False)
    logger.debug(f"max_outbound={config.max_outbound} skip_malformed={config.skip_malformed}", extra={"addr": config.addr})

    client = ChatClient(config.addr, config=config)
    try:
        asyncio.run(client.connect())
    except ChatError as e:
        err_console.print(f"\n[red]{type(e).__name__}[/]: {escape(str(e))}")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        raise typer.Exit(code=130)
    console.print()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
