"""Read and rewrite HTTP attributes stored with a file."""

import logging
from collections.abc import Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Final, TypeVar

from server.apps.files.exceptions import NotFoundError, ObjectNotFoundError
from server.apps.files.infrastructure.storage import ObjectStore, strip_etag
from server.apps.files.types import (
    UNSET,
    FileAttributes,
    SetFileAttributesOptions,
    Unset,
)

_ValueT = TypeVar('_ValueT')

# Stored headers an attribute rewrite carries over unchanged
_PRESERVED_HEADERS: Final = ('ContentEncoding', 'ContentLanguage')

logger = logging.getLogger(__name__)


def _pick(value: _ValueT | Unset, current: _ValueT) -> _ValueT:
    if value is UNSET:
        return current
    return value


async def _head(store: ObjectStore, path: str, key: str) -> Mapping[str, Any]:
    try:
        return await store.head_object(key)
    except ObjectNotFoundError as error:
        raise NotFoundError(f'File not found: {path}') from error


def _parse_expires(head: Mapping[str, Any]) -> datetime | None:
    expires = head.get('Expires')
    if isinstance(expires, datetime):
        return expires
    raw = head.get('ExpiresString')
    if not raw:
        return None
    try:
        return parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.warning('Ignoring unparsable Expires header: %s', raw)
        return None


def attributes_from_head(path: str, head: Mapping[str, Any]) -> FileAttributes:
    """Build file attributes from a head-object response.

    Args:
        path: Caller path of the file.
        head: Raw head-object response.

    Returns:
        FileAttributes of the object.
    """
    return FileAttributes(
        path=path,
        size=head.get('ContentLength'),
        last_modified=head.get('LastModified'),
        etag=strip_etag(head.get('ETag')),
        content_type=head.get('ContentType'),
        cache_control=head.get('CacheControl'),
        content_disposition=head.get('ContentDisposition'),
        metadata=dict(head.get('Metadata') or {}),
        expires_at=_parse_expires(head),
    )


async def read_attributes(
    store: ObjectStore,
    path: str,
    key: str,
) -> FileAttributes:
    """Read a file's attributes.

    Args:
        store: Object store.
        path: Caller path of the file.
        key: Store key of the file.

    Returns:
        FileAttributes of the object.

    Raises:
        NotFoundError: If the file does not exist.
    """
    return attributes_from_head(path, await _head(store, path, key))


async def write_attributes(
    store: ObjectStore,
    path: str,
    key: str,
    options: SetFileAttributesOptions,
) -> FileAttributes:
    """Rewrite a file's attributes in place.

    S3 cannot update attributes of an existing object, so the object is
    copied onto itself with ``MetadataDirective=REPLACE``. Attributes
    left ``UNSET`` in ``options`` keep their current values, ``None``
    clears them. Content encoding and language are carried over.

    Args:
        store: Object store.
        path: Caller path of the file.
        key: Store key of the file.
        options: Attributes to change and optional ``if_match``.

    Returns:
        Attributes read back after the rewrite.

    Raises:
        NotFoundError: If the file does not exist.
        PreconditionFailedError: If ``if_match`` does not hold.
    """
    head = await _head(store, path, key)
    current = attributes_from_head(path, head)

    content_type = _pick(options.content_type, current.content_type)
    cache_control = _pick(options.cache_control, current.cache_control)
    content_disposition = _pick(
        options.content_disposition,
        current.content_disposition,
    )
    expires_at = _pick(options.expires_at, current.expires_at)
    metadata = _pick(options.metadata, current.metadata)

    replacement: dict[str, Any] = {'Metadata': dict(metadata or {})}
    if content_type:
        replacement['ContentType'] = content_type
    if cache_control:
        replacement['CacheControl'] = cache_control
    if content_disposition:
        replacement['ContentDisposition'] = content_disposition
    if expires_at is not None:
        replacement['Expires'] = expires_at
    # REPLACE drops every header not resent
    for header in _PRESERVED_HEADERS:
        if head.get(header):
            replacement[header] = head[header]

    try:
        await store.copy_object(
            key,
            key,
            if_match=options.if_match,
            replace_attributes=replacement,
        )
    except ObjectNotFoundError as error:
        raise NotFoundError(f'File not found: {path}') from error

    logger.info('Updated attributes of %s', key)
    return await read_attributes(store, path, key)
