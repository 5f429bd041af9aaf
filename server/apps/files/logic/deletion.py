"""Batched deletes of single keys and whole folder subtrees.

Nothing here is transactional: a failing batch aborts the operation and
keys deleted by earlier batches stay deleted.
"""

import logging
from collections.abc import AsyncIterable, Iterable

from server.apps.files.exceptions import FolderNotEmptyError
from server.apps.files.infrastructure.storage import (
    MAX_KEYS_PER_REQUEST,
    ObjectStore,
)

# Two keys are enough to tell "marker only" from "has children"
_EMPTINESS_PROBE_SIZE = 2

logger = logging.getLogger(__name__)


async def delete_keys(store: ObjectStore, keys: Iterable[str]) -> int:
    """Delete known keys in store-sized batches.

    Args:
        store: Object store.
        keys: Keys to delete; duplicates are removed.

    Returns:
        Number of keys submitted for deletion.
    """
    unique_keys = list(dict.fromkeys(keys))
    deleted = 0
    for start in range(0, len(unique_keys), MAX_KEYS_PER_REQUEST):
        batch = unique_keys[start:start + MAX_KEYS_PER_REQUEST]
        deleted += await store.delete_objects(batch)
    return deleted


async def delete_key_stream(
    store: ObjectStore,
    keys: AsyncIterable[str],
) -> int:
    """Delete keys produced lazily, buffering one batch at a time.

    Args:
        store: Object store.
        keys: Async stream of keys (e.g., a prefix enumeration).

    Returns:
        Number of keys submitted for deletion.
    """
    deleted = 0
    batch: list[str] = []
    async for key in keys:
        batch.append(key)
        if len(batch) >= MAX_KEYS_PER_REQUEST:
            deleted += await store.delete_objects(batch)
            batch = []
    if batch:
        deleted += await store.delete_objects(batch)
    return deleted


async def delete_folder_tree(store: ObjectStore, prefix: str) -> int:
    """Delete every object under a folder prefix, marker included.

    Args:
        store: Object store.
        prefix: Delimiter-terminated folder prefix.

    Returns:
        Number of keys deleted.
    """
    deleted = await delete_key_stream(store, store.iter_keys(prefix))
    logger.info('Deleted folder tree %s (%d objects)', prefix, deleted)
    return deleted


async def delete_empty_folder(
    store: ObjectStore,
    prefix: str,
    path: str,
) -> None:
    """Delete a folder's marker object if the folder has no children.

    Args:
        store: Object store.
        prefix: Delimiter-terminated folder prefix.
        path: Caller path of the folder, for error reporting.

    Raises:
        FolderNotEmptyError: If any key other than the marker exists.
    """
    page = await store.list_page(prefix, limit=_EMPTINESS_PROBE_SIZE)
    children = [
        stored.key
        for stored in page.objects
        if stored.key != prefix
    ]
    if children:
        logger.info('Refusing to delete non-empty folder: %s', prefix)
        raise FolderNotEmptyError(path)

    await store.delete_object(prefix)
    logger.info('Deleted empty folder: %s', prefix)
