"""Connectors to external services used by linkbin."""

from .plaid_link import PlaidExchangeClient

__all__ = ["PlaidExchangeClient"]
