from __future__ import annotations
"""Paginated enumeration of the remote key space."""
import logging
from typing import Callable, Iterable, Iterator

from .models import ObjectEntry, ObjectPage, ObjectSummary, Page
from .services import ListingFailure

# Hard ceiling of the object store for a single listing request.
MAX_KEYS = 1000
DEFAULT_DELIMITER = "/"

FetchPageFn = Callable[..., ObjectPage]

LOGGER = logging.getLogger(__name__)


def is_placeholder_key(key: str, delimiter: str = DEFAULT_DELIMITER) -> bool:
    """Return True for keys that only mark a directory (or are blank)."""
    return not key.strip() or key.endswith(delimiter)


def partition_listing(
    prefix: str,
    common_prefixes: Iterable[str],
    objects: Iterable[ObjectSummary],
    delimiter: str = DEFAULT_DELIMITER,
) -> list[ObjectEntry]:
    """Build the entries directly under ``prefix``: directories first, then files.

    Each group is sorted by display name using plain ordinal comparison. The
    placeholder object named exactly like ``prefix`` is not a child of itself
    and is left out.
    """
    directories = [
        ObjectEntry(
            key=common,
            display_name=common.removeprefix(prefix).rstrip(delimiter),
            is_directory=True,
        )
        for common in common_prefixes
    ]
    files = [
        ObjectEntry(
            key=summary.key,
            display_name=summary.key.removeprefix(prefix),
            is_directory=False,
            size=summary.size,
            last_modified=summary.last_modified,
        )
        for summary in objects
        if summary.key and summary.key != prefix
    ]
    directories.sort(key=lambda entry: entry.display_name)
    files.sort(key=lambda entry: entry.display_name)
    return directories + files


def virtual_children(
    keys: Iterable[str],
    prefix: str = "",
    delimiter: str = DEFAULT_DELIMITER,
) -> list[ObjectEntry]:
    """Derive a one-level directory view from a flat set of keys.

    Mirrors what the store does for a delimiter listing, so an already fetched
    flat listing can be browsed without another round trip.
    """
    common_prefixes: set[str] = set()
    objects: dict[str, ObjectSummary] = {}
    for key in keys:
        if not key.startswith(prefix):
            continue
        remainder = key[len(prefix):]
        head, sep, _ = remainder.partition(delimiter)
        if sep:
            common_prefixes.add(f"{prefix}{head}{delimiter}")
        else:
            objects.setdefault(key, ObjectSummary(key=key))
    return partition_listing(prefix, common_prefixes, objects.values(), delimiter)


class PageCursor:
    """Carries the continuation marker between successive page requests."""

    def __init__(
        self,
        fetch_page: FetchPageFn,
        *,
        bucket_name: str,
        prefix: str = "",
        delimiter: str | None = None,
        max_keys: int = MAX_KEYS,
        marker: str | None = None,
    ):
        self._fetch_page = fetch_page
        self._bucket_name = bucket_name
        self._prefix = prefix
        self._delimiter = delimiter
        self._max_keys = max(1, min(max_keys, MAX_KEYS))
        self._marker = marker
        self._truncated = True
        self.requests = 0

    @property
    def marker(self) -> str | None:
        return self._marker

    @property
    def has_next(self) -> bool:
        return self._truncated

    def fetch(self) -> ObjectPage:
        if not self._truncated:
            raise RuntimeError("Listing already reached its last page")
        page = self._fetch_page(
            bucket_name=self._bucket_name,
            prefix=self._prefix,
            delimiter=self._delimiter,
            max_keys=self._max_keys,
            continuation_token=self._marker,
        )
        self.requests += 1
        if page.is_truncated and not page.next_marker:
            raise ListingFailure(
                self._bucket_name,
                self._prefix,
                "Truncated listing returned no continuation marker",
            )
        self._truncated = page.is_truncated
        self._marker = page.next_marker if page.is_truncated else None
        return page


class PaginatedLister:
    """Lists a single bucket either one level at a time or fully flattened."""

    def __init__(
        self,
        fetch_page: FetchPageFn,
        bucket_name: str,
        *,
        delimiter: str = DEFAULT_DELIMITER,
        page_size: int = MAX_KEYS,
    ):
        self._fetch_page = fetch_page
        self.bucket_name = bucket_name
        self.delimiter = delimiter
        self._page_size = max(1, min(page_size, MAX_KEYS))

    def list_prefix(self, prefix: str = "", continuation_marker: str | None = None) -> Page:
        cursor = PageCursor(
            self._fetch_page,
            bucket_name=self.bucket_name,
            prefix=prefix,
            delimiter=self.delimiter,
            max_keys=self._page_size,
            marker=continuation_marker,
        )
        raw = cursor.fetch()
        entries = partition_listing(prefix, raw.common_prefixes, raw.objects, self.delimiter)
        LOGGER.debug(
            "Listed %d entries under '%s' in bucket '%s' (truncated=%s)",
            len(entries),
            prefix,
            self.bucket_name,
            raw.is_truncated,
        )
        return Page(
            entries=entries,
            continuation_marker=cursor.marker,
            is_truncated=raw.is_truncated,
        )

    def iter_pages(self, prefix: str = "") -> Iterator[ObjectPage]:
        cursor = PageCursor(
            self._fetch_page,
            bucket_name=self.bucket_name,
            prefix=prefix,
            max_keys=self._page_size,
        )
        while cursor.has_next:
            yield cursor.fetch()
        LOGGER.debug(
            "Flat listing of '%s' in bucket '%s' took %d request(s)",
            prefix,
            self.bucket_name,
            cursor.requests,
        )

    def list_all_flat(self, prefix: str = "") -> list[ObjectEntry]:
        """Return every object below ``prefix`` in arrival order.

        Directory placeholder keys and duplicates are dropped. A failing page
        aborts the whole listing.
        """
        seen: set[str] = set()
        entries: list[ObjectEntry] = []
        for page in self.iter_pages(prefix):
            for summary in page.objects:
                key = summary.key
                if is_placeholder_key(key, self.delimiter) or key in seen:
                    continue
                seen.add(key)
                entries.append(
                    ObjectEntry(
                        key=key,
                        display_name=key.rsplit(self.delimiter, 1)[-1],
                        is_directory=False,
                        size=summary.size,
                        last_modified=summary.last_modified,
                    )
                )
        return entries

    def list_all_keys(self, prefix: str = "") -> list[str]:
        seen: set[str] = set()
        keys: list[str] = []
        for page in self.iter_pages(prefix):
            for summary in page.objects:
                if is_placeholder_key(summary.key, self.delimiter) or summary.key in seen:
                    continue
                seen.add(summary.key)
                keys.append(summary.key)
        return keys
