"""Orchestration of the Plaid Link handshake.

``Linker.link`` connects a new item and ``Linker.relink`` re-authorises an
existing one. Both run the same steps:

1. Create a Link token (update mode for relinks)
2. Start the local callback server and point the browser at it
3. Wait for Plaid Link to report a public token
4. Exchange the public token for an access token
5. Stop the server, on every path, and return the ``TokenPair``

Persisting the returned pair is left to the caller.
"""

import logging
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from ..config import LinkConfig, PlaidConfig
from ..errors import ItemMismatchError
from ..schemas import LinkWidgetConfig, TokenPair
from ..store import CredentialStore
from .server import CallbackServer

logger = logging.getLogger(__name__)


class ExchangeClient(Protocol):
    """Plaid operations the linker depends on."""

    def create_link_token(self, access_token: str | None = None) -> str: ...

    def exchange(self, public_token: str) -> TokenPair: ...


@dataclass(frozen=True)
class HandshakeSession:
    """One Link or Relink attempt."""

    port: int
    item_id: str = ""

    @property
    def update_mode(self) -> bool:
        return bool(self.item_id)


class Linker:
    """Runs Plaid Link handshakes and returns the resulting credentials."""

    def __init__(
        self,
        store: CredentialStore,
        client: ExchangeClient,
        plaid_config: PlaidConfig,
        link_config: LinkConfig,
        open_browser: Callable[[str], object] | None = webbrowser.open,
    ):
        """Initialize the linker.

        Args:
            store: Credential store used to look up tokens for relinks
            client: Plaid client creating Link tokens and exchanging public tokens
            plaid_config: Plaid settings (environment and products shown in Link)
            link_config: Local server settings
            open_browser: Called with the Plaid Link URL once the server is
                listening. None only logs the URL.
        """
        self.store = store
        self.client = client
        self.plaid_config = plaid_config
        self.link_config = link_config
        self.open_browser = open_browser

    def link(self, port: int | None = None) -> TokenPair:
        """Link a new item.

        Args:
            port: Local port for Plaid Link. Defaults to the configured port.

        Returns:
            TokenPair: Credentials of the newly linked item
        """
        session = HandshakeSession(port=self._port(port))
        return self._handshake(session, access_token=None)

    def relink(self, item_id: str, port: int | None = None) -> TokenPair:
        """Re-authorise an existing item through Plaid Link update mode.

        Args:
            item_id: Item to re-authorise; must already have an access token
            port: Local port for Plaid Link. Defaults to the configured port.

        Returns:
            TokenPair: Credentials of the same item

        Raises:
            UnknownItemError: If no access token is stored for the item
            ItemMismatchError: If Plaid resolves the handshake to another item
        """
        access_token = self.store.get_token(item_id)
        session = HandshakeSession(port=self._port(port), item_id=item_id)

        pair = self._handshake(session, access_token=access_token)
        if pair.item_id != item_id:
            raise ItemMismatchError(expected=item_id, actual=pair.item_id)
        return pair

    def _port(self, port: int | None) -> int:
        return self.link_config.port if port is None else port

    def _open(self, url: str) -> None:
        if self.open_browser is None:
            return
        try:
            self.open_browser(url)
        except Exception as e:
            # The URL is already logged; the user can still open it by hand
            logger.warning(f"⚠️  Could not open a browser: {e}")

    def _handshake(
        self, session: HandshakeSession, access_token: str | None
    ) -> TokenPair:
        link_token = self.client.create_link_token(access_token=access_token)
        widget = LinkWidgetConfig(
            link_token=link_token,
            environment=self.plaid_config.environment,
            products=self.plaid_config.products,
            item_id=session.item_id,
        )

        server = CallbackServer(
            widget, host=self.link_config.host, port=session.port
        )
        try:
            server.start()

            logger.info(f"🔗 Open {server.url} to complete Plaid Link")
            self._open(server.url)

            public_token = server.await_public_token(
                timeout=self.link_config.timeout_seconds
            )
            pair = self.client.exchange(public_token)
        finally:
            server.stop()

        if session.update_mode:
            logger.info(f"✅ Re-linked item {pair.item_id}")
        else:
            logger.info(f"✅ Linked item {pair.item_id}")
        return pair
