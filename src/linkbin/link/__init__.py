"""Plaid Link handshake: local callback server and linker."""

from .linker import ExchangeClient, HandshakeSession, Linker
from .server import CallbackServer, HandshakeSignal, HandshakeState

__all__ = [
    "CallbackServer",
    "ExchangeClient",
    "HandshakeSession",
    "HandshakeSignal",
    "HandshakeState",
    "Linker",
]
