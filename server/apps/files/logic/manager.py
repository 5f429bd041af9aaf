"""Folder manager: hierarchical file operations over a flat bucket.

Every public method follows the same sequence: normalize paths (which
rejects traversal before any store call), run the authorization gate,
then perform store I/O. Multi-object operations are compositions of
single-object calls and are not atomic; see ``copy`` and ``move``.

The lock folder (``lock_prefix`` below the root) is reserved: caller
paths inside it are rejected and it never shows up in listings.

The manager holds immutable configuration only and is safe to share
between concurrent calls.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Final, final

from server.apps.files.exceptions import InvalidPathError, InvalidRequestError
from server.apps.files.infrastructure.storage import (
    MAX_KEYS_PER_REQUEST,
    ObjectStore,
)
from server.apps.files.logic import (
    attributes,
    deletion,
    listing,
    locks,
    presign,
    search,
    transfer,
)
from server.apps.files.logic.authorization import (
    AuthorizationGate,
    FileManagerHooks,
)
from server.apps.files.logic.paths import DEFAULT_DELIMITER, KeyMapper
from server.apps.files.types import (
    Action,
    AuthContext,
    AuthorizationMode,
    AuthorizeArgs,
    CopyOptions,
    CreateFolderOptions,
    DeleteFilesOptions,
    DeleteFolderOptions,
    FileAttributes,
    FileAttributesOptions,
    FolderLock,
    FolderLockOptions,
    ListOptions,
    ListResult,
    MoveOptions,
    PreparedUpload,
    PrepareUploadsOptions,
    PreviewOptions,
    PreviewUrl,
    SearchOptions,
    SearchResult,
    SetFileAttributesOptions,
)

DEFAULT_LOCK_PREFIX: Final = '.locks/'
DEFAULT_LOCK_TTL_SECONDS: Final = 300

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileManagerOptions:
    """Immutable manager configuration, owned by the caller."""

    bucket: str
    root_prefix: str = ''
    delimiter: str = DEFAULT_DELIMITER
    authorization_mode: AuthorizationMode = AuthorizationMode.DENY_BY_DEFAULT
    hooks: FileManagerHooks = field(default_factory=FileManagerHooks)
    lock_folder_moves: bool = False
    lock_prefix: str = DEFAULT_LOCK_PREFIX
    lock_ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS


@final
class FileManager:  # noqa: WPS214
    """Emulates folders, copy, move and delete on an object store."""

    def __init__(self, store: ObjectStore, options: FileManagerOptions) -> None:
        """Initialize file manager.

        Args:
            store: Object store bound to ``options.bucket``.
            options: Manager configuration.
        """
        if store.bucket != options.bucket:
            raise ValueError(
                f'Store bucket {store.bucket!r} does not match '
                f'configured bucket {options.bucket!r}',
            )
        self._store = store
        self._options = options
        self._mapper = KeyMapper(options.root_prefix, options.delimiter)
        self._hooks = options.hooks
        self._gate = AuthorizationGate(
            options.hooks.authorize,
            options.hooks.allow_action,
            options.authorization_mode,
        )
        self._lock_path = self._mapper.normalize_folder_path(options.lock_prefix)
        if not self._lock_path:
            raise ValueError('Lock prefix must name a folder below the root')
        self._lock_root = self._mapper.root_prefix + self._lock_path

    @property
    def mapper(self) -> KeyMapper:
        """Get the path/key mapper."""
        return self._mapper

    @property
    def lock_root(self) -> str:
        """Get the key prefix lock objects are stored under."""
        return self._lock_root

    @property
    def store(self) -> ObjectStore:
        """Get the underlying object store."""
        return self._store

    async def list(
        self,
        options: ListOptions,
        ctx: AuthContext,
    ) -> ListResult:
        """List the direct children of a folder.

        Args:
            options: Folder path, cursor and page limit.
            ctx: Caller context.

        Returns:
            One page of entries, folders first then by name.
        """
        path = self._unreserved(self._mapper.normalize_folder_path(options.path))
        limit = _validate_limit(options.limit)
        await self._authorize(Action.LIST, ctx, path=path)

        return await listing.list_folder(
            self._store,
            self._mapper,
            self._hooks,
            path,
            cursor=options.cursor,
            limit=limit,
            hidden_prefix=self._lock_root,
        )

    async def search(
        self,
        options: SearchOptions,
        ctx: AuthContext,
    ) -> SearchResult:
        """Find files whose name contains the query.

        A blank query returns no entries without touching the store.

        Args:
            options: Query, scope, recursion, limit and cursor.
            ctx: Caller context.

        Returns:
            One page of matching files.
        """
        scope = self._unreserved(
            self._mapper.normalize_folder_path(options.path or ''),
        )
        if not options.query.strip():
            return SearchResult(query=options.query, entries=[])

        limit = _validate_limit(options.limit)
        await self._authorize(Action.SEARCH, ctx, path=scope)

        return await search.search_files(
            self._store,
            self._mapper,
            self._hooks,
            options.query,
            scope,
            recursive=options.recursive,
            limit=limit or MAX_KEYS_PER_REQUEST,
            cursor=options.cursor,
            hidden_prefix=self._lock_root,
        )

    async def create_folder(
        self,
        options: CreateFolderOptions,
        ctx: AuthContext,
    ) -> None:
        """Create a folder by writing its zero-byte marker object.

        Args:
            options: Folder path.
            ctx: Caller context.
        """
        path = self._require_folder(options.path)
        await self._authorize(Action.FOLDER_CREATE, ctx, path=path)

        await self._store.put_object(self._mapper.path_to_folder_prefix(path))
        logger.info('Created folder: %s', path)

    async def delete_folder(
        self,
        options: DeleteFolderOptions,
        ctx: AuthContext,
    ) -> None:
        """Delete a folder.

        Non-recursive deletes only succeed for folders holding nothing
        but their marker. Recursive deletes remove the whole subtree in
        batches; a failing batch leaves earlier batches deleted.

        Args:
            options: Folder path and recursion flag.
            ctx: Caller context.

        Raises:
            FolderNotEmptyError: If non-recursive and children exist.
        """
        path = self._require_folder(options.path)
        if options.recursive:
            self._reject_lock_ancestor(path)
        await self._authorize(Action.FOLDER_DELETE, ctx, path=path)

        prefix = self._mapper.path_to_folder_prefix(path)
        if options.recursive:
            await deletion.delete_folder_tree(self._store, prefix)
        else:
            await deletion.delete_empty_folder(self._store, prefix, path)

    async def delete_files(
        self,
        options: DeleteFilesOptions,
        ctx: AuthContext,
    ) -> None:
        """Delete files.

        Every path is authorized before anything is deleted.

        Args:
            options: File paths.
            ctx: Caller context.
        """
        paths = [self._require_file(raw_path) for raw_path in options.paths]
        for path in paths:
            await self._authorize(Action.FILE_DELETE, ctx, path=path)

        deleted = await deletion.delete_keys(
            self._store,
            [self._mapper.path_to_key(path) for path in paths],
        )
        logger.info('Deleted %d files', deleted)

    async def copy(self, options: CopyOptions, ctx: AuthContext) -> None:
        """Copy a file, or a folder with everything under it.

        A folder copy is not atomic: if a child copy fails, objects
        already copied stay at the destination. Children deleted by
        someone else while the copy runs are skipped.

        Args:
            options: Source and destination; a source ending with the
                delimiter designates a folder.
            ctx: Caller context.
        """
        from_path, to_path, is_folder = self._transfer_paths(options)
        if from_path == to_path:
            return

        if is_folder:
            await self._authorize(
                Action.FOLDER_COPY,
                ctx,
                from_path=from_path,
                to_path=to_path,
            )
            await transfer.copy_folder(
                self._store,
                self._mapper.path_to_folder_prefix(from_path),
                self._mapper.path_to_folder_prefix(to_path),
            )
            return

        await self._authorize(
            Action.FILE_COPY,
            ctx,
            from_path=from_path,
            to_path=to_path,
        )
        await transfer.copy_file(
            self._store,
            self._mapper.path_to_key(from_path),
            self._mapper.path_to_key(to_path),
            if_match=options.if_match,
        )

    async def move(self, options: MoveOptions, ctx: AuthContext) -> None:
        """Move a file or folder: copy, then delete the source.

        The source is only deleted once the copy completed. If the copy
        fails part way, the source is untouched and the destination
        holds a partial tree. If the process dies between copy and
        delete, both trees exist.

        Args:
            options: Source and destination.
            ctx: Caller context.

        Raises:
            FolderLockedError: If folder locks are enabled and another
                move of the same folder is in progress.
        """
        from_path, to_path, is_folder = self._transfer_paths(options)
        if from_path == to_path:
            return

        if not is_folder:
            await self._authorize(
                Action.FILE_MOVE,
                ctx,
                from_path=from_path,
                to_path=to_path,
            )
            await self.copy(options, ctx)
            await self.delete_files(DeleteFilesOptions(paths=[from_path]), ctx)
            return

        await self._authorize(
            Action.FOLDER_MOVE,
            ctx,
            from_path=from_path,
            to_path=to_path,
        )
        if not self._options.lock_folder_moves:
            await self._move_folder(options, from_path, ctx)
            return

        lock = locks.new_lock(
            from_path,
            to_path,
            self._options.lock_ttl_seconds,
            owner=ctx.user_id,
        )
        async with locks.hold_folder_lock(
            self._store,
            self._lock_key(from_path),
            lock,
        ):
            await self._move_folder(options, from_path, ctx)

    async def prepare_uploads(
        self,
        options: PrepareUploadsOptions,
        ctx: AuthContext,
    ) -> Sequence[PreparedUpload]:
        """Presign one PUT upload per requested item.

        Items are authorized and signed one after another; a failure
        aborts the loop, URLs already issued simply expire unused.

        Args:
            options: Items and URL lifetime.
            ctx: Caller context.

        Returns:
            Prepared uploads in request order.
        """
        expires_in = presign.validate_expires_in(options.expires_in_seconds)
        prepared: list[PreparedUpload] = []
        for item in options.items:
            path = self._require_file(item.path)
            await self._authorize(Action.UPLOAD_PREPARE, ctx, path=path)
            prepared.append(
                await presign.prepare_upload(
                    self._store,
                    path,
                    self._mapper.path_to_key(path),
                    item,
                    expires_in,
                ),
            )
        return prepared

    async def get_preview_url(
        self,
        options: PreviewOptions,
        ctx: AuthContext,
    ) -> PreviewUrl:
        """Presign a GET for previewing (inline) or downloading a file.

        Args:
            options: File path, URL lifetime and disposition.
            ctx: Caller context.

        Returns:
            URL and absolute expiry.
        """
        path = self._require_file(options.path)
        expires_in = presign.validate_expires_in(options.expires_in_seconds)
        await self._authorize(Action.PREVIEW_GET, ctx, path=path)

        return await presign.preview_url(
            self._store,
            path,
            self._mapper.path_to_key(path),
            expires_in,
            inline=options.inline,
        )

    async def get_file_attributes(
        self,
        options: FileAttributesOptions,
        ctx: AuthContext,
    ) -> FileAttributes:
        """Read a file's stored HTTP attributes and metadata.

        Args:
            options: File path.
            ctx: Caller context.

        Returns:
            Attributes of the file.
        """
        path = self._require_file(options.path)
        await self._authorize(Action.FILE_ATTRIBUTES_GET, ctx, path=path)
        return await attributes.read_attributes(
            self._store,
            path,
            self._mapper.path_to_key(path),
        )

    async def set_file_attributes(
        self,
        options: SetFileAttributesOptions,
        ctx: AuthContext,
    ) -> FileAttributes:
        """Rewrite a file's stored HTTP attributes and metadata.

        Args:
            options: File path, new attributes and optional ``if_match``.
            ctx: Caller context.

        Returns:
            Attributes after the rewrite.
        """
        path = self._require_file(options.path)
        await self._authorize(Action.FILE_ATTRIBUTES_SET, ctx, path=path)
        return await attributes.write_attributes(
            self._store,
            path,
            self._mapper.path_to_key(path),
            options,
        )

    async def get_folder_lock(
        self,
        options: FolderLockOptions,
        ctx: AuthContext,
    ) -> FolderLock | None:
        """Get the live move lock of a folder, if any.

        Args:
            options: Folder path.
            ctx: Caller context.

        Returns:
            The live lock, or None.
        """
        path = self._require_folder(options.path)
        await self._authorize(Action.FOLDER_LOCK_GET, ctx, path=path)

        lock = await locks.read_lock(self._store, self._lock_key(path))
        if lock is None or not locks.is_live(lock):
            return None
        return lock

    async def _move_folder(
        self,
        options: MoveOptions,
        from_path: str,
        ctx: AuthContext,
    ) -> None:
        await self.copy(options, ctx)
        await self.delete_folder(
            DeleteFolderOptions(path=from_path, recursive=True),
            ctx,
        )
        logger.info('Moved folder %s -> %s', from_path, options.to_path)

    async def _authorize(
        self,
        action: Action,
        ctx: AuthContext,
        path: str | None = None,
        from_path: str | None = None,
        to_path: str | None = None,
    ) -> None:
        await self._gate.check(
            AuthorizeArgs(
                action=action,
                ctx=ctx,
                path=path,
                from_path=from_path,
                to_path=to_path,
            ),
        )

    def _require_folder(self, raw_path: str) -> str:
        path = self._mapper.normalize_folder_path(raw_path)
        if not path:
            raise InvalidPathError('Invalid path: the root folder cannot be used here')
        return self._unreserved(path)

    def _require_file(self, raw_path: str) -> str:
        path = self._mapper.normalize_path(raw_path)
        if not path:
            raise InvalidPathError('Invalid path: a file path is required')
        return self._unreserved(path)

    def _unreserved(self, path: str) -> str:
        # The lock folder belongs to the manager, never to callers
        if path and self._mapper.is_within(path, self._lock_path):
            raise InvalidPathError(
                f'Invalid path: {self._lock_path} is reserved for folder locks',
            )
        return path

    def _reject_lock_ancestor(self, path: str) -> None:
        if self._mapper.is_within(self._lock_path, path):
            raise InvalidPathError(
                f'Invalid path: {path} contains the folder lock area',
            )

    def _transfer_paths(self, options: CopyOptions) -> tuple[str, str, bool]:
        is_folder = self._mapper.is_folder_path(options.from_path)
        if not is_folder:
            return (
                self._require_file(options.from_path),
                self._require_file(options.to_path),
                False,
            )

        from_path = self._require_folder(options.from_path)
        to_path = self._require_folder(options.to_path)
        self._reject_lock_ancestor(from_path)
        if from_path != to_path and self._mapper.is_within(to_path, from_path):
            raise InvalidRequestError(
                f'Cannot copy folder {from_path} into itself ({to_path})',
            )
        return from_path, to_path, True

    def _lock_key(self, folder_path: str) -> str:
        return self._lock_root + folder_path + locks.LOCK_OBJECT_NAME


def _validate_limit(limit: int | None) -> int | None:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidRequestError("Expected 'limit' to be an integer")
    if not 1 <= limit <= MAX_KEYS_PER_REQUEST:
        raise InvalidRequestError(
            f"Expected 'limit' between 1 and {MAX_KEYS_PER_REQUEST}",
        )
    return limit
