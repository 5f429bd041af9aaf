"""Name-substring search by linear scan of a key prefix.

There is no index: every object under the scope is listed and filtered
client-side, so cost grows with objects scanned, not with matches.
The cursor records the last key examined, which lets a page that hits
``limit`` in the middle of a store page resume right after it.
"""

import base64
import binascii
import logging
from typing import Final

from server.apps.files.exceptions import InvalidRequestError
from server.apps.files.infrastructure.storage import (
    MAX_KEYS_PER_REQUEST,
    ObjectStore,
)
from server.apps.files.logic.authorization import FileManagerHooks
from server.apps.files.logic.listing import (
    decorate_file,
    make_file_entry,
    sort_entries,
)
from server.apps.files.logic.paths import KeyMapper
from server.apps.files.types import FileEntry, SearchResult

_CURSOR_ENCODING: Final = 'utf-8'

logger = logging.getLogger(__name__)


def encode_cursor(key: str) -> str:
    """Encode the last examined key as an opaque cursor.

    Args:
        key: Store key.

    Returns:
        URL-safe cursor string.
    """
    return base64.urlsafe_b64encode(key.encode(_CURSOR_ENCODING)).decode('ascii')


def decode_cursor(cursor: str) -> str:
    """Decode a cursor produced by ``encode_cursor``.

    Args:
        cursor: Opaque cursor from a previous search page.

    Returns:
        Store key to resume after.

    Raises:
        InvalidRequestError: If the cursor is not a valid search cursor.
    """
    try:
        return base64.urlsafe_b64decode(cursor.encode('ascii')).decode(
            _CURSOR_ENCODING,
        )
    except (binascii.Error, UnicodeError, ValueError) as error:
        raise InvalidRequestError('Invalid search cursor') from error


async def search_files(  # noqa: WPS211, WPS231
    store: ObjectStore,
    mapper: KeyMapper,
    hooks: FileManagerHooks,
    query: str,
    scope_path: str,
    recursive: bool,
    limit: int,
    cursor: str | None = None,
    hidden_prefix: str | None = None,
) -> SearchResult:
    """Find files whose name contains ``query`` (case-insensitive).

    Args:
        store: Object store.
        mapper: Key mapper of the manager.
        hooks: Manager hooks (decoration).
        query: Raw query; must not be blank.
        scope_path: Normalized folder path to search under.
        recursive: When False, only direct children of the scope match.
        limit: Maximum matches on the page.
        cursor: Cursor returned by a previous page.
        hidden_prefix: Keys under this prefix are never returned.

    Returns:
        SearchResult with at most ``limit`` matches.
    """
    needle = query.strip().lower()
    prefix = mapper.path_to_folder_prefix(scope_path)
    scope = mapper.normalize_folder_path(scope_path)

    start_after = decode_cursor(cursor) if cursor else None
    if start_after is not None and not start_after.startswith(prefix):
        raise InvalidRequestError('Search cursor does not belong to this scope')

    matches: list[FileEntry] = []
    store_cursor: str | None = None
    last_key = start_after
    has_more = False
    scanned = 0

    while True:
        page = await store.list_page(
            prefix,
            delimiter=None if recursive else mapper.delimiter,
            cursor=store_cursor,
            start_after=start_after,
            limit=MAX_KEYS_PER_REQUEST,
        )
        for index, stored in enumerate(page.objects):
            last_key = stored.key
            scanned += 1
            # Folder markers are not files
            if stored.key.endswith(mapper.delimiter):
                continue
            if hidden_prefix and stored.key.startswith(hidden_prefix):
                continue
            path = mapper.key_to_path(stored.key)
            if not recursive and mapper.delimiter in path[len(scope):]:
                continue
            if needle not in mapper.get_name(path).lower():
                continue

            entry = make_file_entry(mapper, stored)
            matches.append(await decorate_file(hooks, entry, stored.key))
            if len(matches) >= limit:
                is_last_on_page = index == len(page.objects) - 1
                has_more = not is_last_on_page or page.next_cursor is not None
                break

        if len(matches) >= limit or page.next_cursor is None:
            break
        store_cursor = page.next_cursor

    logger.debug(
        'Search %r under %s scanned %d objects, %d matches',
        needle,
        prefix,
        scanned,
        len(matches),
    )
    next_cursor = None
    if has_more and last_key is not None:
        next_cursor = encode_cursor(last_key)
    return SearchResult(
        query=query,
        entries=sort_entries(matches),
        next_cursor=next_cursor,
    )
