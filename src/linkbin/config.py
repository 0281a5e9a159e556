"""Configuration management for linkbin.

This module provides a Pydantic Settings-based configuration value that is
built once at process start and passed explicitly to the credential store,
the Plaid connector and the linker. Settings are read, in priority order,
from keyword overrides, ``LINKBIN_`` environment variables, a ``.env`` file,
the legacy ``PLAID_*`` variables and YAML config files in the data directory
and the working directory.
"""

import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_NAME = "config.yaml"
STORE_FILE_NAME = "credentials.json"


def default_data_dir() -> Path:
    """Get the default data directory.

    Returns:
        Path: ~/.linkbin
    """
    return Path.home() / ".linkbin"


class PlaidConfig(BaseModel):
    """Plaid API configuration settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(default="", description="Plaid client ID")
    secret: str = Field(default="", description="Plaid secret key")
    environment: Literal["sandbox", "development", "production"] = Field(
        default="sandbox", description="Plaid environment"
    )
    client_name: str = Field(
        default="linkbin", description="Application name shown inside Plaid Link"
    )
    client_user_id: str = Field(
        default="linkbin-user", description="Stable end-user ID sent to Plaid"
    )
    products: tuple[str, ...] = Field(
        default=("transactions",), description="Products requested for new items"
    )
    country_codes: tuple[str, ...] = Field(
        default=("US",), description="Country codes offered in Plaid Link"
    )
    language: str = Field(default="en", description="Plaid Link display language")

    @field_validator("products", "country_codes")
    @classmethod
    def validate_non_empty(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Ensure at least one value is configured."""
        if not v:
            raise ValueError("At least one value is required")
        return v


class LinkConfig(BaseModel):
    """Local Plaid Link handshake settings."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(
        default="127.0.0.1", description="Interface the callback server binds"
    )
    port: int = Field(
        default=8080, ge=0, le=65535, description="Port on which to serve Plaid Link"
    )
    timeout_seconds: float | None = Field(
        default=600.0,
        gt=0,
        description="Seconds to wait for the browser; None waits indefinitely",
    )
    open_browser: bool = Field(
        default=True, description="Open the Plaid Link page in a browser"
    )


class LegacyPlaidSettingsSource(PydanticBaseSettingsSource):
    """Map the unprefixed PLAID_* variables onto the ``plaid`` section.

    Only the fields that are set are returned, so the rest of the section
    still comes from lower-priority sources such as config.yaml.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        plaid: dict[str, Any] = {}

        client_id = os.getenv("PLAID_CLIENT_ID")
        secret = os.getenv("PLAID_SECRET")
        env = os.getenv("PLAID_ENV")

        if client_id:
            plaid["client_id"] = client_id
        if secret:
            plaid["secret"] = secret
        if env in ("sandbox", "development", "production"):
            plaid["environment"] = env

        return {"plaid": plaid} if plaid else {}


class LinkBinSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the LINKBIN_ prefix.
    For nested configs, use double underscores: LINKBIN_LINK__PORT

    The legacy PLAID_CLIENT_ID, PLAID_SECRET and PLAID_ENV variables fill in
    the matching Plaid fields unless a LINKBIN_ variable or .env sets them.
    """

    data_dir: Path = Field(
        default_factory=default_data_dir,
        description="Directory holding the credential store and config.yaml",
    )
    plaid: PlaidConfig = Field(default_factory=PlaidConfig)
    link: LinkConfig = Field(default_factory=LinkConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Add YAML config files below the environment-based sources.

        The data directory must be known before its config.yaml can be read,
        so it is taken from the init kwargs or LINKBIN_DATA_DIR directly.
        """
        init_dict = init_settings.init_kwargs if init_settings else {}
        data_dir = init_dict.get("data_dir") or os.getenv("LINKBIN_DATA_DIR")  # type: ignore[reportUnknownMemberType]
        data_dir = Path(data_dir).expanduser() if data_dir else default_data_dir()

        # One source per file so sections are merged key by key
        data_dir_yaml = YamlConfigSettingsSource(
            settings_cls,
            yaml_file=data_dir / CONFIG_FILE_NAME,
            yaml_file_encoding="utf-8",
        )
        working_dir_yaml = YamlConfigSettingsSource(
            settings_cls,
            yaml_file=Path(CONFIG_FILE_NAME),
            yaml_file_encoding="utf-8",
        )
        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=".env",
            env_file_encoding="utf-8",
        )

        return (
            init_settings,
            env_settings,
            custom_dotenv,
            LegacyPlaidSettingsSource(settings_cls),
            data_dir_yaml,
            working_dir_yaml,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_prefix="LINKBIN_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Expand ``~`` in the data directory."""
        return v.expanduser()

    @property
    def store_path(self) -> Path:
        """Path of the credential store file inside the data directory."""
        return self.data_dir / STORE_FILE_NAME

    def validate_required_credentials(self) -> None:
        """Validate that required Plaid credentials are present."""
        errors: list[str] = []

        if not self.plaid.client_id:
            errors.append("PLAID_CLIENT_ID is required")
        if not self.plaid.secret:
            errors.append("PLAID_SECRET is required")

        if errors:
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")


def load_settings(**overrides: Any) -> LinkBinSettings:
    """Build the settings value for this process.

    Args:
        **overrides: Explicit values taking precedence over every other source.
            ``None`` values are ignored so CLI options can be passed through.

    Returns:
        LinkBinSettings: The configuration to pass to the application's components

    Raises:
        ValueError: If configuration is invalid
    """
    load_dotenv()

    kwargs = {key: value for key, value in overrides.items() if value is not None}
    try:
        return LinkBinSettings(**kwargs)
    except Exception as e:
        raise ValueError(f"Configuration error: {e}") from e
