"""Pydantic schemas shared across linkbin.

Covers the credential handed back by a completed handshake, the
configuration the browser page uses to start Plaid Link, and the on-disk
layout of the credential store.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TokenPair(BaseModel):
    """Access credential produced by one successful handshake."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    item_id: str = Field(..., min_length=1, description="Plaid item identifier")
    access_token: str = Field(..., min_length=1, description="Plaid access token")


class LinkWidgetConfig(BaseModel):
    """Parameters used to initialise Plaid Link in the browser.

    ``link_token`` already encodes the client, environment and products on
    Plaid's side; the remaining fields are shown to the user and select the
    page wording for update mode.
    """

    model_config = ConfigDict(frozen=True)

    link_token: str = Field(..., min_length=1, description="Plaid Link token")
    environment: str = Field(default="sandbox", description="Plaid environment")
    products: tuple[str, ...] = Field(
        default=("transactions",), description="Requested Plaid products"
    )
    item_id: str = Field(
        default="", description="Item being re-authorised (update mode only)"
    )

    @property
    def update_mode(self) -> bool:
        """True when the widget re-authorises an existing item."""
        return bool(self.item_id)


class StoreDocument(BaseModel):
    """On-disk layout of the credential store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tokens: dict[str, str] = Field(default_factory=dict)
    aliases: dict[str, str] = Field(default_factory=dict)
    back_aliases: dict[str, str] = Field(default_factory=dict, alias="backAliases")

    @field_validator("tokens", "aliases", "back_aliases", mode="before")
    @classmethod
    def null_as_empty(cls, v: object) -> object:
        """Treat an explicit ``null`` mapping as empty."""
        return {} if v is None else v
