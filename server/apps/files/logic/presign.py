"""Presigned upload and preview URLs.

URLs are stateless: nothing is stored, unused URLs simply expire.
"""

import logging
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from typing import Any, Final

from server.apps.files.exceptions import InvalidRequestError
from server.apps.files.infrastructure.storage import ObjectStore
from server.apps.files.types import PreparedUpload, PrepareUploadItem, PreviewUrl

# SigV4 presigned URLs are valid for at most seven days
MAX_EXPIRES_IN_SECONDS: Final = 7 * 24 * 60 * 60

_METADATA_HEADER_PREFIX: Final = 'x-amz-meta-'

logger = logging.getLogger(__name__)


def validate_expires_in(expires_in: int) -> int:
    """Check a presigned URL lifetime.

    Args:
        expires_in: Requested lifetime in seconds.

    Returns:
        The lifetime, unchanged.

    Raises:
        InvalidRequestError: If outside 1 second .. 7 days.
    """
    if isinstance(expires_in, bool) or not isinstance(expires_in, int):
        raise InvalidRequestError("Expected 'expiresInSeconds' to be an integer")
    if not 1 <= expires_in <= MAX_EXPIRES_IN_SECONDS:
        raise InvalidRequestError(
            f"Expected 'expiresInSeconds' between 1 and {MAX_EXPIRES_IN_SECONDS}",
        )
    return expires_in


def http_date(moment: datetime) -> str:
    """Format a datetime as an HTTP date header value.

    Args:
        moment: Datetime; naive values are taken as UTC.

    Returns:
        RFC 7231 date (e.g., ``Wed, 21 Oct 2026 07:28:00 GMT``).
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return format_datetime(moment.astimezone(UTC), usegmt=True)


async def prepare_upload(
    store: ObjectStore,
    path: str,
    key: str,
    item: PrepareUploadItem,
    expires_in: int,
) -> PreparedUpload:
    """Presign one PUT upload.

    Requested attributes are both signed into the request and returned
    as headers the client must send with the upload.

    Args:
        store: Object store.
        path: Normalized caller path.
        key: Destination store key.
        item: Requested content attributes.
        expires_in: URL lifetime in seconds.

    Returns:
        PreparedUpload with URL, method and required headers.
    """
    params: dict[str, Any] = {'Key': key}
    headers: dict[str, str] = {}

    if item.content_type:
        params['ContentType'] = item.content_type
        headers['Content-Type'] = item.content_type
    if item.cache_control:
        params['CacheControl'] = item.cache_control
        headers['Cache-Control'] = item.cache_control
    if item.content_disposition:
        params['ContentDisposition'] = item.content_disposition
        headers['Content-Disposition'] = item.content_disposition
    if item.expires_at is not None:
        params['Expires'] = item.expires_at
        headers['Expires'] = http_date(item.expires_at)
    if item.metadata:
        params['Metadata'] = dict(item.metadata)
        for meta_key, meta_value in item.metadata.items():
            headers[f'{_METADATA_HEADER_PREFIX}{meta_key}'] = meta_value

    url = await store.presign('put_object', params, expires_in)
    logger.info('Prepared upload for %s (expires in %ds)', key, expires_in)
    return PreparedUpload(path=path, url=url, headers=headers)


async def preview_url(
    store: ObjectStore,
    path: str,
    key: str,
    expires_in: int,
    inline: bool,
) -> PreviewUrl:
    """Presign one GET for previewing or downloading a file.

    Args:
        store: Object store.
        path: Normalized caller path.
        key: Store key of the file.
        expires_in: URL lifetime in seconds.
        inline: Display inline instead of downloading as attachment.

    Returns:
        PreviewUrl with the URL and its absolute expiry.
    """
    disposition = 'inline' if inline else 'attachment'
    url = await store.presign(
        'get_object',
        {'Key': key, 'ResponseContentDisposition': disposition},
        expires_in,
    )
    expires_at = datetime.now(tz=UTC) + timedelta(seconds=expires_in)
    logger.debug('Issued %s preview URL for %s', disposition, key)
    return PreviewUrl(path=path, url=url, expires_at=expires_at)
