"""Delimiter-based folder listing over the flat key space."""

import logging
from collections.abc import Iterable

from server.apps.files.infrastructure.storage import (
    MAX_KEYS_PER_REQUEST,
    ObjectStore,
    StoredObject,
)
from server.apps.files.logic.authorization import FileManagerHooks, resolve
from server.apps.files.logic.paths import KeyMapper, ensure_trailing_delimiter
from server.apps.files.types import Entry, FileEntry, FolderEntry, ListResult

logger = logging.getLogger(__name__)


def make_file_entry(mapper: KeyMapper, stored: StoredObject) -> FileEntry:
    """Build a file entry from a listed object.

    Args:
        mapper: Key mapper of the manager.
        stored: Object summary from a listing page.

    Returns:
        FileEntry with the caller-visible path.
    """
    path = mapper.key_to_path(stored.key)
    return FileEntry(
        path=path,
        name=mapper.get_name(path),
        size=stored.size,
        last_modified=stored.last_modified,
        etag=stored.etag,
    )


def make_folder_entry(mapper: KeyMapper, prefix: str) -> FolderEntry:
    """Build a folder entry from a common prefix.

    Args:
        mapper: Key mapper of the manager.
        prefix: Common prefix key (e.g., ``tenant-a/docs/``).

    Returns:
        FolderEntry whose path ends with the delimiter.
    """
    path = ensure_trailing_delimiter(
        mapper.key_to_path(prefix).strip(mapper.delimiter),
        mapper.delimiter,
    )
    return FolderEntry(path=path, name=mapper.get_name(path))


def sort_entries(entries: Iterable[Entry]) -> list[Entry]:
    """Order entries folders first, then by name, then by path.

    Args:
        entries: Unordered entries.

    Returns:
        Sorted list.
    """
    return sorted(
        entries,
        key=lambda entry: (
            isinstance(entry, FileEntry),
            entry.name,
            entry.path,
        ),
    )


async def decorate_file(
    hooks: FileManagerHooks,
    entry: FileEntry,
    key: str,
) -> FileEntry:
    """Attach the ``decorate_file`` hook's payload to an entry.

    Args:
        hooks: Manager hooks.
        entry: Undecorated entry.
        key: Store key of the file.

    Returns:
        Entry carrying the hook's ``extra`` payload.
    """
    if hooks.decorate_file is None:
        return entry
    extra = await resolve(hooks.decorate_file(entry, key))
    return FileEntry(
        path=entry.path,
        name=entry.name,
        size=entry.size,
        last_modified=entry.last_modified,
        etag=entry.etag,
        content_type=entry.content_type,
        extra=extra,
    )


async def decorate_folder(
    hooks: FileManagerHooks,
    entry: FolderEntry,
    prefix: str,
) -> FolderEntry:
    """Attach the ``decorate_folder`` hook's payload to an entry.

    Args:
        hooks: Manager hooks.
        entry: Undecorated entry.
        prefix: Store prefix of the folder.

    Returns:
        Entry carrying the hook's ``extra`` payload.
    """
    if hooks.decorate_folder is None:
        return entry
    extra = await resolve(hooks.decorate_folder(entry, prefix))
    return FolderEntry(path=entry.path, name=entry.name, extra=extra)


async def list_folder(  # noqa: WPS211
    store: ObjectStore,
    mapper: KeyMapper,
    hooks: FileManagerHooks,
    path: str,
    cursor: str | None = None,
    limit: int | None = None,
    hidden_prefix: str | None = None,
) -> ListResult:
    """List the direct children of one folder.

    Issues a single delimiter listing call. Common prefixes become
    folders, keys become files; the folder's own marker object is
    skipped.

    Args:
        store: Object store.
        mapper: Key mapper of the manager.
        hooks: Manager hooks (decoration).
        path: Normalized folder path (``''`` for the root).
        cursor: Continuation token returned by a previous page.
        limit: Maximum children (folders plus files) on the page.
        hidden_prefix: Keys under this prefix are never returned.

    Returns:
        ListResult sorted folders first, then by name.
    """
    prefix = mapper.path_to_folder_prefix(path)
    page = await store.list_page(
        prefix,
        delimiter=mapper.delimiter,
        cursor=cursor,
        limit=limit or MAX_KEYS_PER_REQUEST,
    )

    entries: list[Entry] = []
    for common_prefix in page.common_prefixes:
        if _is_hidden(common_prefix, hidden_prefix):
            continue
        folder = make_folder_entry(mapper, common_prefix)
        entries.append(await decorate_folder(hooks, folder, common_prefix))

    for stored in page.objects:
        if stored.key == prefix or _is_hidden(stored.key, hidden_prefix):
            continue
        file_entry = make_file_entry(mapper, stored)
        entries.append(await decorate_file(hooks, file_entry, stored.key))

    logger.debug(
        'Listed %d entries under %s (more: %s)',
        len(entries),
        prefix,
        page.next_cursor is not None,
    )
    return ListResult(
        path=path,
        entries=sort_entries(entries),
        next_cursor=page.next_cursor,
    )


def _is_hidden(key: str, hidden_prefix: str | None) -> bool:
    return bool(hidden_prefix) and key.startswith(hidden_prefix)
