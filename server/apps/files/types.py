"""Value objects exchanged with the folder manager.

All values are request-scoped and immutable. Paths are caller-visible,
delimiter-separated relative strings; folder paths always end with the
delimiter and the root folder is the empty string.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum
from typing import Final, Generic, TypeVar

FileExtraT = TypeVar('FileExtraT')
FolderExtraT = TypeVar('FolderExtraT')

DEFAULT_EXPIRES_IN_SECONDS: Final = 300
DEFAULT_SEARCH_LIMIT: Final = 500


class Unset(Enum):
    """Marker for an attribute a rewrite leaves unchanged."""

    UNSET = 'unset'


UNSET: Final = Unset.UNSET


class Action(StrEnum):
    """Actions submitted to the authorization gate."""

    LIST = 'list'
    SEARCH = 'search'
    FOLDER_CREATE = 'folder.create'
    FOLDER_DELETE = 'folder.delete'
    FOLDER_LOCK_GET = 'folder.lock.get'
    UPLOAD_PREPARE = 'upload.prepare'
    FILE_DELETE = 'file.delete'
    FILE_COPY = 'file.copy'
    FILE_MOVE = 'file.move'
    FILE_ATTRIBUTES_GET = 'file.attributes.get'
    FILE_ATTRIBUTES_SET = 'file.attributes.set'
    FOLDER_COPY = 'folder.copy'
    FOLDER_MOVE = 'folder.move'
    PREVIEW_GET = 'preview.get'


class AuthorizationMode(StrEnum):
    """Fallback decision when no authorization hook is configured."""

    ALLOW_BY_DEFAULT = 'allow-by-default'
    DENY_BY_DEFAULT = 'deny-by-default'


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Caller identity supplied per call by the embedding layer."""

    user_id: str | None = None
    attributes: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AuthorizeArgs:
    """Unit of authorization decision.

    Single-path actions carry ``path``; copy and move carry
    ``from_path`` and ``to_path``.
    """

    action: Action
    ctx: AuthContext
    path: str | None = None
    from_path: str | None = None
    to_path: str | None = None


@dataclass(frozen=True, slots=True)
class FileEntry(Generic[FileExtraT]):
    """A file (object) visible in a folder listing."""

    path: str
    name: str
    size: int | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    content_type: str | None = None
    extra: FileExtraT | None = None


@dataclass(frozen=True, slots=True)
class FolderEntry(Generic[FolderExtraT]):
    """A pseudo-folder synthesized from a common prefix or marker."""

    path: str
    name: str
    extra: FolderExtraT | None = None


Entry = FileEntry[FileExtraT] | FolderEntry[FolderExtraT]


@dataclass(frozen=True, slots=True)
class ListResult(Generic[FileExtraT, FolderExtraT]):
    """One page of a folder listing."""

    path: str
    entries: Sequence[Entry[FileExtraT, FolderExtraT]]
    next_cursor: str | None = None


@dataclass(frozen=True, slots=True)
class SearchResult(Generic[FileExtraT]):
    """One page of name-substring search matches."""

    query: str
    entries: Sequence[FileEntry[FileExtraT]]
    next_cursor: str | None = None


@dataclass(frozen=True, slots=True)
class PreparedUpload:
    """Presigned single-object upload handed to the client."""

    path: str
    url: str
    headers: Mapping[str, str]
    method: str = 'PUT'


@dataclass(frozen=True, slots=True)
class PreviewUrl:
    """Presigned read URL and its absolute expiry."""

    path: str
    url: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class FileAttributes:
    """HTTP-level attributes stored with an object."""

    path: str
    size: int | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    content_type: str | None = None
    cache_control: str | None = None
    content_disposition: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class FolderLock:
    """Advisory lock held by a folder move in progress."""

    path: str
    from_path: str
    to_path: str
    started_at: datetime
    expires_at: datetime
    operation: str = 'folder.move'
    owner: str | None = None


# Operation options


@dataclass(frozen=True, slots=True)
class ListOptions:
    path: str = ''
    cursor: str | None = None
    limit: int | None = None


@dataclass(frozen=True, slots=True)
class SearchOptions:
    query: str
    path: str | None = None
    recursive: bool = True
    limit: int = DEFAULT_SEARCH_LIMIT
    cursor: str | None = None


@dataclass(frozen=True, slots=True)
class CreateFolderOptions:
    path: str


@dataclass(frozen=True, slots=True)
class DeleteFolderOptions:
    path: str
    recursive: bool = False


@dataclass(frozen=True, slots=True)
class DeleteFilesOptions:
    paths: Sequence[str]


@dataclass(frozen=True, slots=True)
class CopyOptions:
    """Source and destination for ``copy`` and ``move``.

    A ``from_path`` ending with the delimiter designates a folder.
    ``if_match`` only applies to single-file operations.
    """

    from_path: str
    to_path: str
    if_match: str | None = None


MoveOptions = CopyOptions


@dataclass(frozen=True, slots=True)
class PrepareUploadItem:
    path: str
    content_type: str | None = None
    cache_control: str | None = None
    content_disposition: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class PrepareUploadsOptions:
    items: Sequence[PrepareUploadItem]
    expires_in_seconds: int = DEFAULT_EXPIRES_IN_SECONDS


@dataclass(frozen=True, slots=True)
class PreviewOptions:
    path: str
    expires_in_seconds: int = DEFAULT_EXPIRES_IN_SECONDS
    inline: bool = False


@dataclass(frozen=True, slots=True)
class FileAttributesOptions:
    path: str


@dataclass(frozen=True, slots=True)
class SetFileAttributesOptions:
    """Attribute rewrite.

    Fields left at ``UNSET`` keep their current value; ``None`` clears
    the attribute (``metadata=None`` removes all user metadata).
    """

    path: str
    content_type: str | None | Unset = UNSET
    cache_control: str | None | Unset = UNSET
    content_disposition: str | None | Unset = UNSET
    metadata: Mapping[str, str] | None | Unset = UNSET
    expires_at: datetime | None | Unset = UNSET
    if_match: str | None = None


@dataclass(frozen=True, slots=True)
class FolderLockOptions:
    path: str
