"""Object store access for S3-compatible storage.

boto3 clients are blocking, so every call runs in a worker thread via
``asyncio.to_thread``. Store failures are translated into
``StorageError`` subclasses; the original ``ClientError`` is chained.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Final, final

from botocore.exceptions import ClientError

from server.apps.files.exceptions import (
    ObjectNotFoundError,
    PreconditionFailedError,
    StorageError,
)

if TYPE_CHECKING:
    from botocore.client import BaseClient

# Maximum keys per DeleteObjects call and per listing page
MAX_KEYS_PER_REQUEST: Final = 1000

_NOT_FOUND_CODES: Final = frozenset(('NoSuchKey', 'NotFound', '404'))
_PRECONDITION_CODES: Final = frozenset(('PreconditionFailed', '412'))

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoredObject:
    """Object summary returned by a listing call."""

    key: str
    size: int | None = None
    last_modified: datetime | None = None
    etag: str | None = None


@dataclass(frozen=True, slots=True)
class ListPage:
    """One page of a listing call."""

    objects: list[StoredObject] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)
    next_cursor: str | None = None


def translate_client_error(error: ClientError) -> StorageError:
    """Map a botocore ``ClientError`` onto the files app taxonomy.

    Args:
        error: Error raised by a boto3 client call.

    Returns:
        ``ObjectNotFoundError``, ``PreconditionFailedError`` or a plain
        ``StorageError`` carrying the store's code and message.
    """
    details = error.response.get('Error', {})
    store_code = str(details.get('Code', ''))
    message = details.get('Message') or str(error)

    if store_code in _NOT_FOUND_CODES:
        return ObjectNotFoundError(message, store_code)
    if store_code in _PRECONDITION_CODES:
        return PreconditionFailedError(message, store_code)
    return StorageError(message, store_code)


def strip_etag(etag: str | None) -> str | None:
    """Remove the quotes S3 puts around entity tags.

    Args:
        etag: Raw ETag value (e.g., ``"abc123"``).

    Returns:
        Bare entity tag, or None.
    """
    if etag is None:
        return None
    return etag.strip('"')


@final
class ObjectStore:
    """Async facade over a boto3 S3 client bound to one bucket."""

    def __init__(self, client: 'BaseClient', bucket: str) -> None:
        """Initialize object store.

        Args:
            client: boto3 S3 client (thread-safe).
            bucket: Bucket every operation targets.
        """
        self._client = client
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        """Get the bucket name."""
        return self._bucket

    async def list_page(  # noqa: WPS211
        self,
        prefix: str,
        delimiter: str | None = None,
        cursor: str | None = None,
        start_after: str | None = None,
        limit: int | None = None,
    ) -> ListPage:
        """Fetch one page of keys under a prefix.

        Args:
            prefix: Key prefix scoping the listing.
            delimiter: When set, keys below the next delimiter are rolled
                up into common prefixes.
            cursor: Continuation token of the previous page.
            start_after: Key to start listing after (first page only).
            limit: Maximum keys plus common prefixes on the page.

        Returns:
            ListPage with objects, common prefixes and the next cursor.
        """
        params: dict[str, Any] = {'Prefix': prefix}
        if delimiter:
            params['Delimiter'] = delimiter
        if cursor:
            params['ContinuationToken'] = cursor
        elif start_after:
            params['StartAfter'] = start_after
        if limit is not None:
            params['MaxKeys'] = limit

        logger.debug('Listing objects under prefix: %s', prefix)
        response = await self._call('list_objects_v2', **params)

        objects = [
            StoredObject(
                key=item['Key'],
                size=item.get('Size'),
                last_modified=item.get('LastModified'),
                etag=strip_etag(item.get('ETag')),
            )
            for item in response.get('Contents', [])
            if 'Key' in item
        ]
        common_prefixes = [
            item['Prefix']
            for item in response.get('CommonPrefixes', [])
            if 'Prefix' in item
        ]
        next_cursor = None
        if response.get('IsTruncated'):
            next_cursor = response.get('NextContinuationToken')
        return ListPage(objects, common_prefixes, next_cursor)

    async def iter_objects(self, prefix: str) -> AsyncIterator[StoredObject]:
        """Iterate every object under a prefix, one page at a time.

        Args:
            prefix: Key prefix scoping the enumeration.

        Yields:
            StoredObject for each key, in key order.
        """
        cursor: str | None = None
        while True:
            page = await self.list_page(
                prefix,
                cursor=cursor,
                limit=MAX_KEYS_PER_REQUEST,
            )
            for stored in page.objects:
                yield stored
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    async def iter_keys(self, prefix: str) -> AsyncIterator[str]:
        """Iterate every key under a prefix.

        Args:
            prefix: Key prefix scoping the enumeration.

        Yields:
            Object keys in key order.
        """
        async for stored in self.iter_objects(prefix):
            yield stored.key

    async def put_object(
        self,
        key: str,
        body: bytes = b'',
        content_type: str | None = None,
    ) -> None:
        """Write an object.

        Args:
            key: Destination key.
            body: Object content; empty for folder markers.
            content_type: Optional MIME type.
        """
        params: dict[str, Any] = {'Key': key, 'Body': body}
        if content_type:
            params['ContentType'] = content_type
        logger.info('Writing object to storage: %s', key)
        await self._call('put_object', **params)

    async def get_object_body(self, key: str) -> bytes:
        """Read an object fully into memory.

        Args:
            key: Object key.

        Returns:
            Object content.

        Raises:
            ObjectNotFoundError: If the key does not exist.
        """
        response = await self._call('get_object', Key=key)
        return await asyncio.to_thread(response['Body'].read)

    async def head_object(self, key: str) -> Mapping[str, Any]:
        """Read object attributes without the body.

        Args:
            key: Object key.

        Returns:
            Raw head response.

        Raises:
            ObjectNotFoundError: If the key does not exist.
        """
        return await self._call('head_object', Key=key)

    async def copy_object(
        self,
        source_key: str,
        dest_key: str,
        if_match: str | None = None,
        replace_attributes: Mapping[str, Any] | None = None,
    ) -> None:
        """Server-side copy of one object.

        Args:
            source_key: Key to copy from.
            dest_key: Key to copy to (may equal ``source_key``).
            if_match: Only copy if the source's ETag matches.
            replace_attributes: When given, attributes replacing the
                source's (``MetadataDirective=REPLACE``).

        Raises:
            ObjectNotFoundError: If the source key does not exist.
            PreconditionFailedError: If ``if_match`` does not hold.
        """
        params: dict[str, Any] = {
            'Key': dest_key,
            'CopySource': {'Bucket': self._bucket, 'Key': source_key},
        }
        if if_match:
            params['CopySourceIfMatch'] = if_match
        if replace_attributes is not None:
            params['MetadataDirective'] = 'REPLACE'
            params.update(replace_attributes)

        logger.info('Copying object: %s -> %s', source_key, dest_key)
        await self._call('copy_object', **params)

    async def delete_object(self, key: str) -> None:
        """Delete one object; deleting a missing key is not an error.

        Args:
            key: Object key.
        """
        logger.info('Deleting object from storage: %s', key)
        await self._call('delete_object', Key=key)

    async def delete_objects(self, keys: Iterable[str]) -> int:
        """Delete up to ``MAX_KEYS_PER_REQUEST`` keys in one call.

        Args:
            keys: Keys to delete.

        Returns:
            Number of keys submitted.

        Raises:
            ValueError: If more keys than one call accepts are given.
            StorageError: If the store reports per-key failures.
        """
        batch = list(keys)
        if not batch:
            return 0
        if len(batch) > MAX_KEYS_PER_REQUEST:
            raise ValueError(
                f'At most {MAX_KEYS_PER_REQUEST} keys per delete call',
            )

        logger.info('Deleting %d objects from storage', len(batch))
        response = await self._call(
            'delete_objects',
            Delete={
                'Objects': [{'Key': key} for key in batch],
                'Quiet': True,
            },
        )
        errors = response.get('Errors', [])
        if errors:
            first = errors[0]
            logger.error(
                'Batch delete reported %d failures, first: %s (%s)',
                len(errors),
                first.get('Key'),
                first.get('Code'),
            )
            raise StorageError(
                first.get('Message') or 'Failed to delete objects',
                str(first.get('Code', '')),
            )
        return len(batch)

    async def presign(
        self,
        client_method: str,
        params: Mapping[str, Any],
        expires_in: int,
    ) -> str:
        """Create a presigned URL for one object operation.

        Args:
            client_method: boto3 method name (``put_object``/``get_object``).
            params: Operation parameters other than the bucket.
            expires_in: URL lifetime in seconds.

        Returns:
            Presigned URL.
        """
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                ClientMethod=client_method,
                Params={'Bucket': self._bucket, **params},
                ExpiresIn=expires_in,
            )
        except ClientError as error:
            logger.exception('Failed to presign %s', client_method)
            raise translate_client_error(error) from error

    async def _call(self, operation: str, **params: Any) -> Any:
        method = getattr(self._client, operation)
        try:
            return await asyncio.to_thread(method, Bucket=self._bucket, **params)
        except ClientError as error:
            translated = translate_client_error(error)
            if isinstance(translated, ObjectNotFoundError):
                logger.debug('%s: object not found (%s)', operation, params.get('Key'))
            else:
                logger.exception('Storage call failed: %s', operation)
            raise translated from error

