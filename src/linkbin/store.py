"""Local credential store for linked Plaid items.

The store keeps three mappings that share one file and one lifecycle:

- ``tokens``: item ID -> access token (the source of truth for linked items)
- ``aliases``: alias -> item ID
- ``back_aliases``: item ID -> its current alias

Changes are made in memory and written back only when ``save()`` is called.
Saving writes a temporary file next to the store and renames it into place,
so other processes never observe a partially written file.
"""

import logging
import os
import tempfile
from collections.abc import Mapping
from contextlib import suppress
from pathlib import Path
from types import MappingProxyType

from pydantic import ValidationError

from .errors import CorruptStoreError, StoreAccessError, UnknownItemError
from .schemas import StoreDocument, TokenPair

logger = logging.getLogger(__name__)


class CredentialStore:
    """Access tokens and aliases for linked items, persisted as one JSON file."""

    def __init__(
        self,
        path: Path,
        tokens: dict[str, str] | None = None,
        aliases: dict[str, str] | None = None,
        back_aliases: dict[str, str] | None = None,
    ):
        self.path = Path(path)
        self._tokens: dict[str, str] = dict(tokens or {})
        self._aliases: dict[str, str] = dict(aliases or {})
        self._back_aliases: dict[str, str] = dict(back_aliases or {})

    @classmethod
    def load(cls, path: Path | str) -> "CredentialStore":
        """Load the store from disk.

        Args:
            path: Location of the store file

        Returns:
            CredentialStore: Loaded store, empty if the file does not exist

        Raises:
            CorruptStoreError: If the file exists but is not a valid store
            StoreAccessError: If the file exists but cannot be read
        """
        store_path = Path(path).expanduser()

        if not store_path.exists():
            logger.debug(f"Credential store not found, starting empty: {store_path}")
            return cls(store_path)

        try:
            raw = store_path.read_text(encoding="utf-8")
            document = StoreDocument.model_validate_json(raw)
        except UnicodeDecodeError as e:
            raise CorruptStoreError(store_path, str(e)) from e
        except OSError as e:
            raise StoreAccessError(store_path, e) from e
        except ValidationError as e:
            reason = e.errors()[0]["msg"] if e.errors() else str(e)
            raise CorruptStoreError(store_path, reason) from e

        logger.debug(
            f"Loaded {len(document.tokens)} token(s) and "
            f"{len(document.aliases)} alias(es) from {store_path}"
        )
        return cls(
            store_path,
            tokens=document.tokens,
            aliases=document.aliases,
            back_aliases=document.back_aliases,
        )

    @property
    def tokens(self) -> Mapping[str, str]:
        """Read-only view of item ID -> access token."""
        return MappingProxyType(self._tokens)

    @property
    def aliases(self) -> Mapping[str, str]:
        """Read-only view of alias -> item ID."""
        return MappingProxyType(self._aliases)

    @property
    def back_aliases(self) -> Mapping[str, str]:
        """Read-only view of item ID -> current alias."""
        return MappingProxyType(self._back_aliases)

    def set_token(self, pair: TokenPair) -> None:
        """Record the access token for an item, replacing any previous token."""
        if pair.item_id in self._tokens:
            logger.debug(f"Replacing access token for item {pair.item_id}")
        self._tokens[pair.item_id] = pair.access_token

    def get_token(self, item_id: str) -> str:
        """Get the access token for an item.

        Raises:
            UnknownItemError: If no token is stored for the item
        """
        try:
            return self._tokens[item_id]
        except KeyError:
            raise UnknownItemError(item_id) from None

    def set_alias(self, alias: str, item_id: str) -> None:
        """Give a linked item a human-readable name.

        The item's previous alias, if any, keeps pointing at the item in
        ``aliases``; only ``back_aliases`` moves to the new name.

        Args:
            alias: Name to assign
            item_id: Item that must already have an access token

        Raises:
            UnknownItemError: If the item has not been linked
        """
        if item_id not in self._tokens:
            raise UnknownItemError(item_id)

        self._aliases[alias] = item_id
        self._back_aliases[item_id] = alias
        logger.debug(f"Aliased item {item_id} as {alias!r}")

    def resolve_alias(self, name_or_id: str) -> str:
        """Resolve an alias to its item ID.

        Unknown names are returned unchanged and treated as literal item IDs.
        """
        return self._aliases.get(name_or_id, name_or_id)

    def resolved_tokens(self) -> dict[str, str]:
        """Map each linked item's alias (or item ID if unaliased) to its token."""
        return {
            self._back_aliases.get(item_id, item_id): token
            for item_id, token in self._tokens.items()
        }

    def save(self) -> None:
        """Atomically write the store to disk.

        Raises:
            OSError: If the file cannot be written. The previous file is left
                untouched in that case.
        """
        document = StoreDocument(
            tokens=self._tokens,
            aliases=self._aliases,
            back_aliases=self._back_aliases,
        )
        payload = document.model_dump_json(by_alias=True, indent=2)

        self.path.parent.mkdir(parents=True, exist_ok=True)

        # mkstemp creates the file with owner-only permissions
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            with suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

        logger.debug(f"Saved credential store to {self.path}")
