"""Token and alias commands for linkbin CLI.

Listings are printed to stdout as indented JSON so they can be piped into
other tools; diagnostics go through logging on stderr.
"""

import json
import logging
from typing import Annotated

import typer

from linkbin.config import LinkBinSettings
from linkbin.errors import LinkBinError, UnknownItemError
from linkbin.store import CredentialStore

logger = logging.getLogger(__name__)


def _load_store(ctx: typer.Context) -> CredentialStore:
    settings: LinkBinSettings = ctx.obj
    try:
        return CredentialStore.load(settings.store_path)
    except LinkBinError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e


def tokens(ctx: typer.Context) -> None:
    """List access tokens, keyed by alias where one is set."""
    store = _load_store(ctx)
    print(json.dumps(store.resolved_tokens(), indent=2))


def list_aliases(ctx: typer.Context) -> None:
    """List aliases and the item IDs they point to."""
    store = _load_store(ctx)
    print(json.dumps(dict(store.aliases), indent=2))


def alias(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(metavar="ITEM-ID", help="Linked item ID")],
    name: Annotated[str, typer.Argument(metavar="NAME", help="Alias to assign")],
) -> None:
    """Give a linked bank account a name.

    Example:
        linkbin alias item-123 checking
    """
    store = _load_store(ctx)

    try:
        store.set_alias(name, item_id)
        store.save()
    except UnknownItemError as e:
        logger.error(
            f"❌ No access token found for item ID `{item_id}`. "
            "Try re-linking your account with `linkbin link`."
        )
        raise typer.Exit(1) from e
    except OSError as e:
        logger.error(f"❌ Could not save credentials: {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ Item {item_id} is now known as {name!r}")
