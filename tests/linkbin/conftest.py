"""Shared pytest fixtures for linkbin tests.

Provides environment isolation, a fake Plaid exchange client and a
scripted "browser" that talks to a running callback server over HTTP.
"""

import json
import socket
import urllib.error
import urllib.request
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from linkbin.config import LinkConfig, PlaidConfig
from linkbin.errors import ExchangeError
from linkbin.schemas import TokenPair

PUBLIC_TOKEN = "public-sandbox-abc"
ACCESS_TOKEN = "access-sandbox-xyz"
ITEM_ID = "item-123"


class FakeExchangeClient:
    """In-memory stand-in for PlaidExchangeClient."""

    def __init__(self, exchanges: dict[str, TokenPair] | None = None):
        self.exchanges = exchanges or {
            PUBLIC_TOKEN: TokenPair(item_id=ITEM_ID, access_token=ACCESS_TOKEN)
        }
        self.link_token_requests: list[str | None] = []
        self.exchanged: list[str] = []

    def create_link_token(self, access_token: str | None = None) -> str:
        self.link_token_requests.append(access_token)
        return "link-sandbox-test"

    def exchange(self, public_token: str) -> TokenPair:
        self.exchanged.append(public_token)
        try:
            return self.exchanges[public_token]
        except KeyError:
            raise ExchangeError(
                "Plaid rejected the public token: INVALID_PUBLIC_TOKEN",
                error_code="INVALID_PUBLIC_TOKEN",
            ) from None


def post_json(url: str, payload: Any) -> tuple[int, dict[str, Any]]:
    """POST a JSON payload and return (status, decoded JSON body)."""
    data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    request = urllib.request.Request(  # noqa: S310 - local test server
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(request, timeout=5) as resp:  # noqa: S310
            return resp.status, json.loads(resp.read().decode())
    except urllib.error.HTTPError as e:
        body = e.read().decode()
        return e.code, json.loads(body) if body.startswith("{") else {}


@pytest.fixture(autouse=True)
def isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Keep tests away from the real home directory, .env and credentials."""
    for var in ("PLAID_CLIENT_ID", "PLAID_SECRET", "PLAID_ENV"):
        monkeypatch.delenv(var, raising=False)
    for var in (
        "LINKBIN_DATA_DIR",
        "LINKBIN_PLAID__CLIENT_ID",
        "LINKBIN_PLAID__SECRET",
        "LINKBIN_PLAID__ENVIRONMENT",
        "LINKBIN_LINK__PORT",
    ):
        monkeypatch.delenv(var, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory for the credential store."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def free_port() -> int:
    """A local TCP port that is free at the time of the call."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def fake_client() -> FakeExchangeClient:
    """Fake exchange client mapping the sandbox public token to item-123."""
    return FakeExchangeClient()


@pytest.fixture
def plaid_config() -> PlaidConfig:
    return PlaidConfig(client_id="test_client_id", secret="test_secret")  # noqa: S106


@pytest.fixture
def link_config() -> LinkConfig:
    """Link settings with a short timeout so failures don't hang the suite."""
    return LinkConfig(timeout_seconds=5.0, open_browser=False)


@pytest.fixture
def browser() -> Callable[..., Callable[[str], None]]:
    """Build browser stand-ins that report Plaid Link results.

    ``browser(payload, ...)`` returns an opener which, given the page URL,
    loads the page and POSTs each payload to the callback path in order.
    Responses are collected on the opener's ``responses`` attribute.
    """

    def make(*payloads: Any) -> Callable[[str], None]:
        responses: list[tuple[int, dict[str, Any]]] = []

        def open_page(url: str) -> None:
            with urllib.request.urlopen(url, timeout=5) as resp:  # noqa: S310
                assert resp.status == 200
            for payload in payloads:
                responses.append(post_json(url.rstrip("/") + "/callback", payload))

        open_page.responses = responses  # type: ignore[attr-defined]
        return open_page

    return make
