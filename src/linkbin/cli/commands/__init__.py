"""Command implementations for the linkbin CLI."""
