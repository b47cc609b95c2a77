from __future__ import annotations
"""Expansion of virtual directories into the objects they contain."""
from dataclasses import replace
import logging

from .listing import PaginatedLister
from .models import ObjectEntry

LOGGER = logging.getLogger(__name__)


class RecursiveExpander:
    """Turns a directory key into the concrete objects stored below it."""

    def __init__(self, lister: PaginatedLister):
        self._lister = lister

    @property
    def delimiter(self) -> str:
        return self._lister.delimiter

    def expand(self, directory_key: str) -> list[ObjectEntry]:
        """Return downloadable entries below ``directory_key``.

        The directory placeholder object itself is never included since there
        is nothing to fetch for it.
        """
        entries = [
            entry if not entry.is_directory else replace(entry, is_directory=False)
            for entry in self._lister.list_all_flat(directory_key)
        ]
        LOGGER.debug("Expanded '%s' into %d object(s)", directory_key, len(entries))
        return entries

    def expand_keys(self, directory_key: str, *, include_marker: bool = True) -> list[str]:
        """Return bare keys below ``directory_key`` for deletion.

        With ``include_marker`` the placeholder key of the directory is appended
        so that an emptied directory does not linger in the listing.
        """
        keys = self._lister.list_all_keys(directory_key)
        if include_marker and directory_key.endswith(self.delimiter) and directory_key not in keys:
            keys.append(directory_key)
        LOGGER.debug("Expanded '%s' into %d key(s) for deletion", directory_key, len(keys))
        return keys
