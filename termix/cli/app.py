from __future__ import annotations

import logging
import os
from typing import Annotated

import typer
from rich.console import Console
from textual.logging import TextualHandler

from termix.config.defaults import default_config
from termix.config.schema import AppConfig
from termix.ui.app import TermixApp

console = Console()

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: AppConfig) -> None:
    """Route ``termix`` log records to the textual devtools console and an optional file."""
    logger = logging.getLogger("termix")
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.WARNING))
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(TextualHandler())
    if config.log_file:
        file_handler = logging.FileHandler(os.path.expanduser(config.log_file), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(file_handler)


def run(
    no_icons: Annotated[bool, typer.Option("--no-icons", help="Use plain-text markers instead of icon glyphs.")] = False,
) -> None:
    try:
        config = default_config()
        configure_logging(config)
        app = TermixApp(os.getcwd(), config, use_icons=not no_icons)
    except Exception:  # noqa: BLE001
        console.print_exception()
        raise typer.Exit(1)

    app.run()


def cli() -> None:
    typer.run(run)


if __name__ == "__main__":
    cli()
