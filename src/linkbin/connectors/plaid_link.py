"""Plaid API connector for the link handshake.

This module uses the Plaid Python SDK with minimal wrapping to create Link
tokens and to exchange the public token produced by Plaid Link for a
long-lived access token. Calls are made once; failures are raised
immediately as linkbin errors without retrying.
"""

import json
import logging
from typing import Any

import urllib3
from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException
from plaid.model.country_code import CountryCode
from plaid.model.item_public_token_exchange_request import (
    ItemPublicTokenExchangeRequest,
)
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products

from ..config import PlaidConfig
from ..errors import ExchangeError, LinkTokenError
from ..schemas import TokenPair

logger = logging.getLogger(__name__)

PLAID_HOSTS: dict[str, str] = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}


def parse_plaid_error(exc: BaseException) -> tuple[str | None, str | None]:
    """Extract ``error_code`` and ``error_message`` from a Plaid API error.

    Args:
        exc: Exception raised by the SDK

    Returns:
        tuple: (error_code, error_message), each None if unavailable
    """
    body = getattr(exc, "body", None)
    if isinstance(body, bytes):
        body = body.decode("utf-8", "replace")
    if not isinstance(body, str) or not body:
        return None, None

    try:
        details = json.loads(body)
    except json.JSONDecodeError:
        return None, None

    if not isinstance(details, dict):
        return None, None
    return details.get("error_code"), details.get("error_message")


class PlaidExchangeClient:
    """Creates Plaid Link tokens and exchanges public tokens."""

    def __init__(self, config: PlaidConfig):
        """Initialize the Plaid client.

        Args:
            config: Plaid credentials and Link options
        """
        self.config = config

        configuration = Configuration(
            host=self._get_plaid_environment(),
            api_key={
                "clientId": config.client_id,
                "secret": config.secret,
            },
        )
        api_client = ApiClient(configuration)
        # Type as Any to avoid pyright partial-unknowns from the SDK stubs
        self.client: Any = plaid_api.PlaidApi(api_client)

        logger.debug(f"Initialized Plaid client for {config.environment} environment")

    def _get_plaid_environment(self) -> str:
        """Get the Plaid API base URL for the configured environment."""
        return PLAID_HOSTS.get(self.config.environment, PLAID_HOSTS["sandbox"])

    def create_link_token(self, access_token: str | None = None) -> str:
        """Create a Link token for the browser widget.

        Args:
            access_token: Access token of an existing item. When given, the
                token starts Plaid Link in update mode for that item.

        Returns:
            str: Link token

        Raises:
            LinkTokenError: If Plaid rejects the request or cannot be reached
        """
        options: dict[str, Any] = {
            "user": LinkTokenCreateRequestUser(
                client_user_id=self.config.client_user_id
            ),
            "client_name": self.config.client_name,
            "country_codes": [CountryCode(c) for c in self.config.country_codes],
            "language": self.config.language,
        }
        if access_token:
            # Update mode re-authorises the existing item; products are not sent
            options["access_token"] = access_token
        else:
            options["products"] = [Products(p) for p in self.config.products]

        mode = "update" if access_token else "new item"
        logger.debug(f"Creating Plaid Link token ({mode} mode)")

        try:
            response: Any = self.client.link_token_create(
                LinkTokenCreateRequest(**options)
            )
        except ApiException as e:
            error_code, error_message = parse_plaid_error(e)
            raise LinkTokenError(
                f"Plaid rejected the link token request: {error_code or e.status}",
                cause=e,
                error_code=error_code,
                error_message=error_message,
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise LinkTokenError(f"Could not reach Plaid: {e}", cause=e) from e

        link_token = getattr(response, "link_token", None)
        if not isinstance(link_token, str) or not link_token:
            raise LinkTokenError("Plaid returned no link token")
        return link_token

    def exchange(self, public_token: str) -> TokenPair:
        """Exchange a public token for an access token.

        Args:
            public_token: Short-lived token reported by Plaid Link

        Returns:
            TokenPair: Item ID and access token of the linked item

        Raises:
            ExchangeError: If Plaid rejects the token or cannot be reached
        """
        logger.info("Exchanging Plaid public token for access token…")

        try:
            response: Any = self.client.item_public_token_exchange(
                ItemPublicTokenExchangeRequest(public_token=public_token)
            )
        except ApiException as e:
            error_code, error_message = parse_plaid_error(e)
            raise ExchangeError(
                f"Plaid rejected the public token: {error_code or e.status}",
                cause=e,
                error_code=error_code,
                error_message=error_message,
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise ExchangeError(f"Could not reach Plaid: {e}", cause=e) from e

        access_token = getattr(response, "access_token", None)
        item_id = getattr(response, "item_id", None)
        if not isinstance(access_token, str) or not access_token:
            raise ExchangeError("Plaid returned no access token")
        if not isinstance(item_id, str) or not item_id:
            raise ExchangeError("Plaid returned no item ID")

        return TokenPair(item_id=item_id, access_token=access_token)
