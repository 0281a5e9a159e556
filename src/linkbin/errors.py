"""Exception hierarchy for linkbin.

Every failure raised by the store, the Plaid connector and the link handshake
derives from ``LinkBinError`` so the CLI can surface them uniformly.
"""

from pathlib import Path


class LinkBinError(Exception):
    """Base class for all linkbin errors."""


# Store errors


class StoreError(LinkBinError):
    """Base class for credential store errors."""


class CorruptStoreError(StoreError):
    """The credential store file exists but cannot be parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Credential store at {path} is corrupt: {reason}")


class StoreAccessError(StoreError):
    """The credential store file exists but cannot be read."""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Could not read credential store at {path}: {cause}")


class UnknownItemError(StoreError):
    """No access token is stored for the requested item."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"No access token found for item ID `{item_id}`")


# Handshake errors


class HandshakeError(LinkBinError):
    """Base class for failures of the browser link handshake."""


class BindFailureError(HandshakeError):
    """The local callback server could not bind its port."""

    def __init__(self, host: str, port: int, cause: OSError):
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(f"Could not listen on {host}:{port}: {cause}")


class HandshakeTimeoutError(HandshakeError):
    """The browser did not complete Plaid Link in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Plaid Link was not completed within {timeout:g} seconds")


class HandshakeRejectedError(HandshakeError):
    """Plaid Link reported an error or the user exited the flow."""

    def __init__(
        self,
        error_code: str | None = None,
        error_message: str | None = None,
        error_type: str | None = None,
    ):
        self.error_code = error_code
        self.error_message = error_message
        self.error_type = error_type
        if error_code:
            detail = f"{error_code}: {error_message or 'no message'}"
        else:
            detail = error_message or "user exited Plaid Link"
        super().__init__(f"Plaid Link did not complete ({detail})")


class ItemMismatchError(HandshakeError):
    """A relink resolved to a different item than the one requested."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Relink of item `{expected}` returned a different item `{actual}`"
        )


# Provider errors


class ProviderError(LinkBinError):
    """A call to the Plaid API failed."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        error_code: str | None = None,
        error_message: str | None = None,
    ):
        self.cause = cause
        self.error_code = error_code
        self.error_message = error_message
        super().__init__(message)


class ExchangeError(ProviderError):
    """Exchanging a public token for an access token failed."""


class LinkTokenError(ProviderError):
    """Creating a Plaid Link token failed."""
