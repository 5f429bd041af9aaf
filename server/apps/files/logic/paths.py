"""Path translation between caller paths and object store keys.

Caller paths are relative and delimiter-separated: ``docs/report.pdf``,
``docs/`` for a folder, ``''`` for the root.
Store keys add the configured root prefix: ``tenant-a/docs/report.pdf``.
"""

from typing import Final, final

from server.apps.files.exceptions import InvalidPathError, OutOfScopeError

DEFAULT_DELIMITER: Final = '/'

# Segment that would escape the current folder
_PARENT_SEGMENT: Final = '..'


def ensure_trailing_delimiter(prefix: str, delimiter: str) -> str:
    """Terminate a non-empty prefix with the delimiter.

    Args:
        prefix: Key or path prefix.
        delimiter: Folder delimiter.

    Returns:
        ``prefix`` ending with ``delimiter``, or ``''`` for an empty prefix.
    """
    if not prefix or prefix.endswith(delimiter):
        return prefix
    return prefix + delimiter


@final
class KeyMapper:
    """Maps caller paths onto keys under a fixed root prefix.

    Rejects path traversal and keeps the root prefix canonical:
    empty, or delimiter-terminated.
    """

    def __init__(
        self,
        root_prefix: str = '',
        delimiter: str = DEFAULT_DELIMITER,
    ) -> None:
        """Initialize key mapper.

        Args:
            root_prefix: Prefix all keys live under (e.g., ``tenant-a``).
            delimiter: Folder delimiter used in keys and paths.
        """
        if not delimiter:
            raise ValueError('Delimiter must not be empty')
        self._delimiter = delimiter
        self._root_prefix = ensure_trailing_delimiter(
            root_prefix.strip('/').strip(delimiter),
            delimiter,
        )

    @property
    def root_prefix(self) -> str:
        """Get the canonical root prefix."""
        return self._root_prefix

    @property
    def delimiter(self) -> str:
        """Get the folder delimiter."""
        return self._delimiter

    def normalize_path(self, raw_path: str) -> str:
        """Normalize a caller path.

        Backslashes become delimiters, empty segments are dropped and
        the result has no leading or trailing delimiter.

        Args:
            raw_path: Caller supplied path (e.g., ``/docs//a.txt``).

        Returns:
            Normalized path (e.g., ``docs/a.txt``).

        Raises:
            InvalidPathError: If any segment is ``..`` or contains NUL.
        """
        if '\x00' in raw_path:
            raise InvalidPathError('Invalid path: contains a null byte')

        unified = raw_path.replace('\\', self._delimiter)
        segments = [
            segment
            for segment in unified.split(self._delimiter)
            if segment
        ]
        if _PARENT_SEGMENT in segments:
            raise InvalidPathError(f'Invalid path: {raw_path}')
        return self._delimiter.join(segments)

    def normalize_folder_path(self, raw_path: str) -> str:
        """Normalize a folder path, keeping the trailing delimiter.

        Args:
            raw_path: Caller supplied folder path.

        Returns:
            Folder path ending with the delimiter, ``''`` for the root.
        """
        return ensure_trailing_delimiter(
            self.normalize_path(raw_path),
            self._delimiter,
        )

    def is_folder_path(self, raw_path: str) -> bool:
        """Check whether a caller path designates a folder.

        Args:
            raw_path: Caller supplied path.

        Returns:
            True if the path ends with the delimiter.
        """
        return raw_path.replace('\\', self._delimiter).endswith(self._delimiter)

    def path_to_key(self, path: str) -> str:
        """Convert a caller path to a store key.

        Args:
            path: Caller path (e.g., ``docs/a.txt``).

        Returns:
            Store key (e.g., ``tenant-a/docs/a.txt``).
        """
        return self._root_prefix + self.normalize_path(path)

    def path_to_folder_prefix(self, path: str) -> str:
        """Convert a caller path to a delimiter-terminated key prefix.

        Args:
            path: Caller folder path (e.g., ``docs``).

        Returns:
            Folder prefix (e.g., ``tenant-a/docs/``); the root prefix for
            the root folder.
        """
        return ensure_trailing_delimiter(
            self.path_to_key(path),
            self._delimiter,
        )

    def key_to_path(self, key: str) -> str:
        """Convert a store key back to a caller path.

        Args:
            key: Store key (e.g., ``tenant-a/docs/``).

        Returns:
            Caller path (e.g., ``docs/``).

        Raises:
            OutOfScopeError: If the key is not under the root prefix.
        """
        if not key.startswith(self._root_prefix):
            raise OutOfScopeError(key, self._root_prefix)
        return key[len(self._root_prefix):]

    def get_name(self, path: str) -> str:
        """Get the last segment of a file or folder path.

        Args:
            path: Caller path (e.g., ``docs/reports/``).

        Returns:
            Name component (e.g., ``reports``); ``''`` for the root.
        """
        segments = [
            segment
            for segment in path.split(self._delimiter)
            if segment
        ]
        if not segments:
            return ''
        return segments[-1]

    def is_within(self, path: str, folder_path: str) -> bool:
        """Check whether a path lies inside (or equals) a folder.

        Args:
            path: Normalized folder path to test.
            folder_path: Normalized folder path of the candidate parent.

        Returns:
            True if ``path`` is ``folder_path`` or one of its descendants.
        """
        return self.normalize_folder_path(path).startswith(
            self.normalize_folder_path(folder_path),
        )
