"""Exceptions for files app.

Every failure raised by the folder manager is a ``FileManagerError``
carrying a stable ``code`` and an HTTP-equivalent ``status``, so the
HTTP layer can render ``{"error": {"code": ..., "message": ...}}``
without inspecting the exception type.
"""

from typing import ClassVar


class FileManagerError(Exception):
    """Base class for all folder manager failures."""

    code: ClassVar[str] = 'internal_error'
    status: ClassVar[int] = 500

    def __init__(self, message: str) -> None:
        """Initialize FileManagerError.

        Args:
            message: Human readable message, safe to show to callers.
        """
        self.message = message
        super().__init__(message)


class InvalidPathError(FileManagerError):
    """Raised when a path is malformed or tries to escape the root."""

    code = 'invalid_path'
    status = 400


class InvalidRequestError(FileManagerError):
    """Raised when request options are missing or malformed."""

    code = 'invalid_body'
    status = 400


class UnauthorizedError(FileManagerError):
    """Raised when the ``authorize`` hook (or deny-by-default) rejects."""

    code = 'unauthorized'
    status = 401


class ForbiddenError(FileManagerError):
    """Raised when the ``allow_action`` hook rejects an action."""

    code = 'forbidden'
    status = 403


class NotFoundError(FileManagerError):
    """Raised when a requested file does not exist."""

    code = 'not_found'
    status = 404


class FolderNotEmptyError(FileManagerError):
    """Raised by a non-recursive folder delete that still has children."""

    code = 'folder_not_empty'
    status = 409

    def __init__(self, path: str) -> None:
        """Initialize FolderNotEmptyError.

        Args:
            path: Folder path that still has children.
        """
        self.path = path
        super().__init__(f'Folder is not empty: {path}')


class FolderLockedError(FileManagerError):
    """Raised when a folder move finds a live lock on the source."""

    code = 'folder_locked'
    status = 409

    def __init__(self, path: str, expires_at: str) -> None:
        """Initialize FolderLockedError.

        Args:
            path: Locked folder path.
            expires_at: ISO timestamp when the current lock expires.
        """
        self.path = path
        self.expires_at = expires_at
        super().__init__(
            f'Folder is locked by another move until {expires_at}: {path}',
        )


class OutOfScopeError(FileManagerError):
    """Raised when a store key falls outside the configured root prefix."""

    code = 'out_of_scope'
    status = 500

    def __init__(self, key: str, root_prefix: str) -> None:
        """Initialize OutOfScopeError.

        Args:
            key: Offending store key.
            root_prefix: Root prefix the key was expected to start with.
        """
        self.key = key
        self.root_prefix = root_prefix
        super().__init__(
            f'Key is outside of root prefix {root_prefix!r}: {key}',
        )


class StorageError(FileManagerError):
    """Raised when the object store reports a failure.

    ``store_code`` keeps the store's own error code (e.g. ``AccessDenied``)
    for logging and for callers that recover from specific failures.
    """

    def __init__(self, message: str, store_code: str = '') -> None:
        """Initialize StorageError.

        Args:
            message: Store error message text.
            store_code: Error code reported by the store.
        """
        self.store_code = store_code
        super().__init__(message)


class ObjectNotFoundError(StorageError):
    """Raised when the store reports ``NoSuchKey`` for an object."""

    code = 'not_found'
    status = 404


class PreconditionFailedError(StorageError):
    """Raised when an ``if_match`` condition does not hold."""

    code = 'precondition_failed'
    status = 412
