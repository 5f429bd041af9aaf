"""Server-side copy of single objects and whole folder subtrees.

The store only offers single-object copies, so a folder copy is an
enumeration of the source prefix with one copy per key. There is no
rollback: when a copy fails, objects copied so far stay in place.
"""

import logging

from server.apps.files.exceptions import ObjectNotFoundError, StorageError
from server.apps.files.infrastructure.storage import ObjectStore

logger = logging.getLogger(__name__)


async def copy_file(
    store: ObjectStore,
    from_key: str,
    to_key: str,
    if_match: str | None = None,
) -> None:
    """Copy one object.

    Args:
        store: Object store.
        from_key: Source key.
        to_key: Destination key.
        if_match: Only copy if the source ETag matches.
    """
    await store.copy_object(from_key, to_key, if_match=if_match)


async def copy_folder(
    store: ObjectStore,
    from_prefix: str,
    to_prefix: str,
) -> int:
    """Copy every object under ``from_prefix`` to ``to_prefix``.

    The folder marker is copied first when it exists. Children that
    vanish between listing and copying are skipped; any other store
    failure aborts the copy.

    Args:
        store: Object store.
        from_prefix: Delimiter-terminated source prefix.
        to_prefix: Delimiter-terminated destination prefix.

    Returns:
        Number of child objects copied (marker excluded).

    Raises:
        StorageError: If a child copy fails for a reason other than the
            child having disappeared.
    """
    try:
        await store.copy_object(from_prefix, to_prefix)
    except StorageError as error:
        # Folders created implicitly by uploads have no marker
        logger.debug(
            'No folder marker copied for %s (%s)',
            from_prefix,
            error.store_code,
        )

    copied = 0
    skipped = 0
    async for source_key in store.iter_keys(from_prefix):
        if source_key == from_prefix:
            continue

        dest_key = to_prefix + source_key[len(from_prefix):]
        try:
            await store.copy_object(source_key, dest_key)
        except ObjectNotFoundError:
            logger.warning(
                'Source vanished during folder copy, skipped: %s',
                source_key,
            )
            skipped += 1
            continue
        copied += 1

    logger.info(
        'Copied folder %s -> %s (%d objects, %d skipped)',
        from_prefix,
        to_prefix,
        copied,
        skipped,
    )
    return copied
