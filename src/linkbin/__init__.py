"""linkbin: link bank accounts to Plaid and keep their access tokens locally.

This package provides:
- A local Plaid Link handshake that turns a browser session into an access token
- A credential store mapping item IDs to access tokens and aliases
- A command-line interface for linking, re-linking and aliasing items
"""

__version__ = "0.1.0"
