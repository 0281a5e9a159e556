"""Link command for linkbin CLI.

Runs the Plaid Link handshake for a new item, or re-links an existing item
given its ID or alias, then saves the resulting access token.
"""

import logging
from typing import Annotated

import typer

from linkbin.config import LinkBinSettings
from linkbin.connectors import PlaidExchangeClient
from linkbin.errors import LinkBinError
from linkbin.link import Linker
from linkbin.store import CredentialStore

logger = logging.getLogger(__name__)


def link(
    ctx: typer.Context,
    item_or_alias: Annotated[
        str | None,
        typer.Argument(
            metavar="[ITEM-ID-OR-ALIAS]",
            help="Item ID or alias to re-link. Omit to link a new account.",
            show_default=False,
        ),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option(
            "--port",
            "-p",
            min=0,
            max=65535,
            help="Port on which to serve Plaid Link. Default: 8080",
        ),
    ] = None,
    no_browser: Annotated[
        bool,
        typer.Option(
            "--no-browser",
            help="Print the Plaid Link URL instead of opening a browser",
        ),
    ] = False,
) -> None:
    """Link a bank account so linkbin can use it.

    An item ID or alias can be passed to re-link an existing account, for
    example after the bank requires you to log in again.

    Example:
        linkbin link
        linkbin link checking --port 8081
    """
    settings: LinkBinSettings = ctx.obj

    try:
        settings.validate_required_credentials()
    except ValueError as e:
        logger.error(f"❌ {e}")
        logger.info("Set PLAID_CLIENT_ID and PLAID_SECRET, or add them to config.yaml")
        raise typer.Exit(1) from e

    try:
        store = CredentialStore.load(settings.store_path)
        open_browser = (
            None if no_browser or not settings.link.open_browser else typer.launch
        )
        linker = Linker(
            store,
            PlaidExchangeClient(settings.plaid),
            settings.plaid,
            settings.link,
            open_browser=open_browser,
        )

        if item_or_alias:
            item_id = store.resolve_alias(item_or_alias)
            logger.info(f"Re-linking item {item_id}")
            pair = linker.relink(item_id, port)
        else:
            pair = linker.link(port)

        store.set_token(pair)
        store.save()
    except LinkBinError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    except OSError as e:
        logger.error(f"❌ Could not save credentials: {e}")
        raise typer.Exit(1) from e

    alias = store.back_aliases.get(pair.item_id)
    if alias:
        logger.info(f"💾 Saved access token for {alias} ({pair.item_id})")
    else:
        logger.info(f"💾 Saved access token for item {pair.item_id}")
        logger.info(f"Name it with: linkbin alias {pair.item_id} <NAME>")
