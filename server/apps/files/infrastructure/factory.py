"""Build a ``FileManager`` from Django settings."""

import dataclasses
import functools
import logging

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from django.conf import settings

from server.apps.files.infrastructure.storage import ObjectStore
from server.apps.files.logic.authorization import (
    Authorizer,
    FileManagerHooks,
    resolve,
)
from server.apps.files.logic.manager import FileManager, FileManagerOptions
from server.apps.files.types import AuthorizationMode, AuthorizeArgs

logger = logging.getLogger(__name__)


def require_user_id(
    authorize: Authorizer | None = None,
) -> Authorizer:
    """Wrap an authorize hook so calls without a user id are rejected.

    Args:
        authorize: Hook consulted once a user id is present.

    Returns:
        Async authorize hook.
    """

    async def authorize_with_user_id(  # noqa: WPS430
        args: AuthorizeArgs,
    ) -> bool | None:
        if not args.ctx.user_id:
            return False
        if authorize is None:
            return None
        return await resolve(authorize(args))

    return authorize_with_user_id


@functools.cache
def get_s3_client(  # noqa: WPS211
    endpoint_url: str | None,
    region_name: str,
    access_key: str | None,
    secret_key: str | None,
    addressing_style: str | None,
) -> BaseClient:
    """Create (once per configuration) a thread-safe S3 client.

    Args:
        endpoint_url: Custom endpoint for MinIO/R2, None for AWS.
        region_name: Signing region.
        access_key: Access key, None for the boto3 credential chain.
        secret_key: Secret key, None for the boto3 credential chain.
        addressing_style: ``path`` for MinIO, None for the default.

    Returns:
        boto3 S3 client.
    """
    s3_config: dict[str, str] = {}
    if addressing_style:
        s3_config['addressing_style'] = addressing_style

    logger.info(
        'Creating S3 client (endpoint: %s, region: %s)',
        endpoint_url or 'aws',
        region_name,
    )
    return boto3.client(
        's3',
        endpoint_url=endpoint_url,
        region_name=region_name,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        config=Config(signature_version='s3v4', s3=s3_config),
    )


def get_object_store() -> ObjectStore:
    """Get an object store bound to ``AWS_STORAGE_BUCKET_NAME``."""
    client = get_s3_client(
        settings.AWS_S3_ENDPOINT_URL,
        settings.AWS_S3_REGION_NAME,
        settings.AWS_ACCESS_KEY_ID,
        settings.AWS_SECRET_ACCESS_KEY,
        settings.AWS_S3_ADDRESSING_STYLE,
    )
    return ObjectStore(client, settings.AWS_STORAGE_BUCKET_NAME)


def build_manager_from_settings(
    hooks: FileManagerHooks | None = None,
) -> FileManager:
    """Create a file manager configured from ``FILE_MANAGER_*`` settings.

    Args:
        hooks: Extra hooks; ``FILE_MANAGER_REQUIRE_USER_ID`` wraps the
            ``authorize`` hook.

    Returns:
        FileManager bound to the configured bucket.
    """
    hooks = hooks or FileManagerHooks()
    if settings.FILE_MANAGER_REQUIRE_USER_ID:
        hooks = dataclasses.replace(
            hooks,
            authorize=require_user_id(hooks.authorize),
        )

    store = get_object_store()
    options = FileManagerOptions(
        bucket=store.bucket,
        root_prefix=settings.FILE_MANAGER_ROOT_PREFIX,
        authorization_mode=AuthorizationMode(
            settings.FILE_MANAGER_AUTHORIZATION_MODE,
        ),
        hooks=hooks,
        lock_folder_moves=settings.FILE_MANAGER_LOCK_FOLDER_MOVES,
        lock_prefix=settings.FILE_MANAGER_LOCK_PREFIX,
        lock_ttl_seconds=settings.FILE_MANAGER_LOCK_TTL_SECONDS,
    )
    return FileManager(store, options)
