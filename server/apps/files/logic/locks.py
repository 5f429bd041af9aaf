"""Advisory locks for folder moves.

A lock is a small JSON object stored under the lock prefix while a
folder move runs. Acquisition reads then writes, so two moves racing
within the same instant can both win; the lock narrows the window for
overlapping moves, it does not close it. Locks expire after their TTL so
a crashed move never blocks a folder forever.
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Final

from server.apps.files.exceptions import FolderLockedError, ObjectNotFoundError
from server.apps.files.infrastructure.storage import ObjectStore
from server.apps.files.types import FolderLock

LOCK_OBJECT_NAME: Final = 'move.lock'

_LOCK_CONTENT_TYPE: Final = 'application/json'

logger = logging.getLogger(__name__)


def new_lock(
    from_path: str,
    to_path: str,
    ttl_seconds: int,
    owner: str | None = None,
) -> FolderLock:
    """Create a lock for a move starting now.

    Args:
        from_path: Source folder path (the locked folder).
        to_path: Destination folder path.
        ttl_seconds: Lock lifetime.
        owner: Optional caller identity recorded in the lock.

    Returns:
        FolderLock expiring ``ttl_seconds`` from now.
    """
    started_at = datetime.now(tz=UTC)
    return FolderLock(
        path=from_path,
        from_path=from_path,
        to_path=to_path,
        started_at=started_at,
        expires_at=started_at + timedelta(seconds=ttl_seconds),
        owner=owner,
    )


def is_live(lock: FolderLock, now: datetime | None = None) -> bool:
    """Check whether a lock has not expired yet.

    Args:
        lock: Lock to check.
        now: Reference time, defaults to the current time.

    Returns:
        True if the lock is still in force.
    """
    return lock.expires_at > (now or datetime.now(tz=UTC))


def dump_lock(lock: FolderLock) -> bytes:
    """Serialize a lock to its stored JSON form.

    Args:
        lock: Lock to serialize.

    Returns:
        UTF-8 encoded JSON document.
    """
    document = {
        'path': lock.path,
        'operation': lock.operation,
        'fromPath': lock.from_path,
        'toPath': lock.to_path,
        'startedAt': lock.started_at.isoformat(),
        'expiresAt': lock.expires_at.isoformat(),
    }
    if lock.owner is not None:
        document['owner'] = lock.owner
    return json.dumps(document).encode('utf-8')


def load_lock(raw: bytes) -> FolderLock:
    """Parse a stored lock document.

    Args:
        raw: Stored JSON document.

    Returns:
        Parsed FolderLock.

    Raises:
        ValueError: If the document is not a valid lock.
    """
    try:
        document = json.loads(raw)
        return FolderLock(
            path=document['path'],
            operation=document.get('operation', 'folder.move'),
            from_path=document['fromPath'],
            to_path=document['toPath'],
            started_at=datetime.fromisoformat(document['startedAt']),
            expires_at=datetime.fromisoformat(document['expiresAt']),
            owner=document.get('owner'),
        )
    except (KeyError, TypeError) as error:
        raise ValueError(f'Malformed folder lock: {error}') from error


async def read_lock(store: ObjectStore, key: str) -> FolderLock | None:
    """Read the lock stored at ``key``.

    Args:
        store: Object store.
        key: Lock object key.

    Returns:
        The stored lock, or None if absent or unreadable.
    """
    try:
        raw = await store.get_object_body(key)
    except ObjectNotFoundError:
        return None
    try:
        return load_lock(raw)
    except ValueError:
        logger.warning('Ignoring unreadable folder lock: %s', key)
        return None


@asynccontextmanager
async def hold_folder_lock(
    store: ObjectStore,
    key: str,
    lock: FolderLock,
) -> AsyncIterator[FolderLock]:
    """Hold a folder lock for the duration of the block.

    Args:
        store: Object store.
        key: Lock object key.
        lock: Lock to write.

    Yields:
        The written lock.

    Raises:
        FolderLockedError: If a live lock is already stored at ``key``.
    """
    existing = await read_lock(store, key)
    if existing is not None and is_live(existing):
        logger.warning(
            'Folder %s is locked by a move to %s until %s',
            existing.path,
            existing.to_path,
            existing.expires_at.isoformat(),
        )
        raise FolderLockedError(existing.path, existing.expires_at.isoformat())

    await store.put_object(key, dump_lock(lock), content_type=_LOCK_CONTENT_TYPE)
    logger.info('Acquired folder lock: %s', key)
    try:
        yield lock
    finally:
        try:
            await store.delete_object(key)
            logger.info('Released folder lock: %s', key)
        except Exception:
            # Best effort: the lock expires on its own
            logger.exception('Failed to release folder lock: %s', key)


async def purge_expired_locks(
    store: ObjectStore,
    lock_root: str,
    dry_run: bool = False,
) -> list[str]:
    """Delete lock objects that have expired.

    Args:
        store: Object store.
        lock_root: Prefix all lock objects live under.
        dry_run: Only report what would be deleted.

    Returns:
        Keys of the expired (or unreadable) locks.
    """
    now = datetime.now(tz=UTC)
    expired: list[str] = []
    async for key in store.iter_keys(lock_root):
        lock = await read_lock(store, key)
        if lock is not None and is_live(lock, now):
            continue
        expired.append(key)
        if not dry_run:
            await store.delete_object(key)
    logger.info(
        '%s %d expired folder locks under %s',
        'Found' if dry_run else 'Purged',
        len(expired),
        lock_root,
    )
    return expired
