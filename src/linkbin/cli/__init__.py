"""linkbin CLI package.

This package provides the command-line interface for linking Plaid items and
managing their access tokens and aliases.
"""

from .main import app, main

__all__ = ["app", "main"]
