"""Main CLI application for linkbin.

This module provides the entry point for all linkbin commands. Settings are
loaded once in the global callback and handed to commands through the typer
context object.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from ..config import load_settings
from ..logging import setup_logging
from .commands import aliases, link

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="linkbin",
    help="linkbin: Link bank accounts to Plaid and manage their access tokens",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None,
        typer.Option(
            "--data-dir",
            "-d",
            help="Directory holding credentials.json and config.yaml. Default: ~/.linkbin",
            envvar="LINKBIN_DATA_DIR",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for linkbin.

    Configuration is read from LINKBIN_* environment variables, a .env file,
    and config.yaml in the data directory or the working directory. The
    PLAID_CLIENT_ID, PLAID_SECRET and PLAID_ENV variables are also honoured.

    Examples:
      linkbin link                     # Link a new bank account
      linkbin link checking            # Re-link the item aliased "checking"
      linkbin alias item-123 checking  # Name a linked item
    """
    setup_logging(cli_mode=True, verbose=verbose)

    try:
        ctx.obj = load_settings(data_dir=data_dir)
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    logger.debug(f"Using data directory: {ctx.obj.data_dir}")


app.command("link")(link.link)
app.command("tokens")(aliases.tokens)
app.command("alias")(aliases.alias)
app.command("aliases")(aliases.list_aliases)


def main() -> None:
    """Entry point for the linkbin CLI application."""
    app()


if __name__ == "__main__":
    main()
