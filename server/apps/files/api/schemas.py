"""Pydantic schemas for the JSON API.

Request models validate camelCase bodies and turn them into manager
options. Payload models render manager results back to camelCase JSON.
Validation failures become ``InvalidRequestError`` naming the offending
field, e.g. ``Invalid 'items[0].path': Input should be a valid string``.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Literal, Self, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from server.apps.files.exceptions import InvalidRequestError
from server.apps.files.types import (
    DEFAULT_EXPIRES_IN_SECONDS,
    DEFAULT_SEARCH_LIMIT,
    CopyOptions,
    CreateFolderOptions,
    DeleteFilesOptions,
    DeleteFolderOptions,
    Entry,
    FileAttributes,
    FileAttributesOptions,
    FileEntry,
    FolderLock,
    FolderLockOptions,
    ListOptions,
    ListResult,
    PreparedUpload,
    PrepareUploadItem,
    PrepareUploadsOptions,
    PreviewOptions,
    PreviewUrl,
    SearchOptions,
    SearchResult,
    SetFileAttributesOptions,
)

Payload = dict[str, Any]

RequestT = TypeVar('RequestT', bound='ApiRequest')

# Attributes a rewrite only touches when the body names them
_REWRITABLE_ATTRIBUTES = (
    'content_type',
    'cache_control',
    'content_disposition',
    'metadata',
    'expires_at',
)


class ApiModel(BaseModel):
    """Base for every wire model: camelCase keys, immutable values."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_payload(self) -> Payload:
        """Dump as JSON-ready camelCase, leaving out unset optionals."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class ApiRequest(ApiModel):
    """Request body convertible into manager options."""

    def to_options(self) -> Any:
        raise NotImplementedError


def _format_location(location: Sequence[int | str]) -> str:
    formatted = ''
    for part in location:
        if isinstance(part, int):
            formatted += f'[{part}]'
        else:
            formatted = f'{formatted}.{part}' if formatted else part
    return formatted


def describe_validation_error(error: ValidationError) -> str:
    """Render the first validation error with its field location.

    Args:
        error: Error raised while validating a request body.

    Returns:
        Message naming the field, or the bare message for body-level
        errors.
    """
    first = error.errors(include_url=False)[0]
    location = _format_location(first['loc'])
    if not location:
        return first['msg']
    return f"Invalid '{location}': {first['msg']}"


def parse_body(schema: type[RequestT], body: Any) -> RequestT:
    """Validate a decoded JSON body against a request schema.

    Args:
        schema: Request model of the route.
        body: Decoded JSON body, ``None`` when the request had none.

    Returns:
        Validated request model.

    Raises:
        InvalidRequestError: If the body is not an object or a field is
            missing or has the wrong type.
    """
    if not isinstance(body, Mapping):
        raise InvalidRequestError('Expected JSON object body')
    try:
        return schema.model_validate(body)
    except ValidationError as error:
        raise InvalidRequestError(describe_validation_error(error)) from error


# Requests


class PathRequest(ApiRequest):
    path: StrictStr


class ListRequest(PathRequest):
    cursor: StrictStr | None = None
    limit: StrictInt | None = None

    def to_options(self) -> ListOptions:
        return ListOptions(path=self.path, cursor=self.cursor, limit=self.limit)


class SearchRequest(ApiRequest):
    query: StrictStr
    path: StrictStr | None = None
    recursive: StrictBool = True
    limit: StrictInt = DEFAULT_SEARCH_LIMIT
    cursor: StrictStr | None = None

    def to_options(self) -> SearchOptions:
        return SearchOptions(
            query=self.query,
            path=self.path,
            recursive=self.recursive,
            limit=self.limit,
            cursor=self.cursor,
        )


class CreateFolderRequest(PathRequest):
    def to_options(self) -> CreateFolderOptions:
        return CreateFolderOptions(path=self.path)


class DeleteFolderRequest(PathRequest):
    recursive: StrictBool = False

    def to_options(self) -> DeleteFolderOptions:
        return DeleteFolderOptions(path=self.path, recursive=self.recursive)


class DeleteFilesRequest(ApiRequest):
    """Files to delete, as ``paths`` strings and/or ``items`` objects.

    Both lists are merged in that order.
    """

    paths: list[StrictStr] | None = None
    items: list[PathRequest] | None = None

    @model_validator(mode='after')
    def require_targets(self) -> Self:
        if self.paths is None and self.items is None:
            raise PydanticCustomError(
                'missing_targets',
                "Expected 'paths' or 'items' to be provided",
            )
        return self

    def to_options(self) -> DeleteFilesOptions:
        paths = list(self.paths or [])
        paths.extend(item.path for item in self.items or [])
        return DeleteFilesOptions(paths=paths)


class CopyRequest(ApiRequest):
    """Body of both ``files/copy`` and ``files/move``."""

    from_path: StrictStr
    to_path: StrictStr
    if_match: StrictStr | None = None

    def to_options(self) -> CopyOptions:
        return CopyOptions(
            from_path=self.from_path,
            to_path=self.to_path,
            if_match=self.if_match,
        )


class PrepareUploadItemRequest(PathRequest):
    content_type: StrictStr | None = None
    cache_control: StrictStr | None = None
    content_disposition: StrictStr | None = None
    metadata: dict[StrictStr, StrictStr] | None = None
    expires_at: datetime | None = None

    def to_item(self) -> PrepareUploadItem:
        return PrepareUploadItem(
            path=self.path,
            content_type=self.content_type,
            cache_control=self.cache_control,
            content_disposition=self.content_disposition,
            metadata=self.metadata or {},
            expires_at=self.expires_at,
        )


class PrepareUploadsRequest(ApiRequest):
    items: list[PrepareUploadItemRequest]
    expires_in_seconds: StrictInt = DEFAULT_EXPIRES_IN_SECONDS

    def to_options(self) -> PrepareUploadsOptions:
        return PrepareUploadsOptions(
            items=[item.to_item() for item in self.items],
            expires_in_seconds=self.expires_in_seconds,
        )


class PreviewRequest(PathRequest):
    expires_in_seconds: StrictInt = DEFAULT_EXPIRES_IN_SECONDS
    inline: StrictBool = False

    def to_options(self) -> PreviewOptions:
        return PreviewOptions(
            path=self.path,
            expires_in_seconds=self.expires_in_seconds,
            inline=self.inline,
        )


class FileAttributesRequest(PathRequest):
    def to_options(self) -> FileAttributesOptions:
        return FileAttributesOptions(path=self.path)


class SetFileAttributesRequest(PathRequest):
    """Attribute rewrite body.

    A key left out of the body keeps the stored value, an explicit
    ``null`` clears it.
    """

    content_type: StrictStr | None = None
    cache_control: StrictStr | None = None
    content_disposition: StrictStr | None = None
    metadata: dict[StrictStr, StrictStr] | None = None
    expires_at: datetime | None = None
    if_match: StrictStr | None = None

    def to_options(self) -> SetFileAttributesOptions:
        given = {
            name: getattr(self, name)
            for name in _REWRITABLE_ATTRIBUTES
            if name in self.model_fields_set
        }
        return SetFileAttributesOptions(
            path=self.path,
            if_match=self.if_match,
            **given,
        )


class FolderLockRequest(PathRequest):
    def to_options(self) -> FolderLockOptions:
        return FolderLockOptions(path=self.path)


# Payloads


class EntryPayload(ApiModel):
    """Listing entry tagged with its ``type``."""

    type: Literal['file', 'folder']
    path: str
    name: str
    size: int | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    content_type: str | None = None
    extra: Any = None

    @classmethod
    def from_entry(cls, entry: Entry) -> 'EntryPayload':
        if isinstance(entry, FileEntry):
            return cls(
                type='file',
                path=entry.path,
                name=entry.name,
                size=entry.size,
                last_modified=entry.last_modified,
                etag=entry.etag,
                content_type=entry.content_type,
                extra=entry.extra,
            )
        return cls(
            type='folder',
            path=entry.path,
            name=entry.name,
            extra=entry.extra,
        )


class ListPayload(ApiModel):
    path: str
    entries: list[EntryPayload]
    next_cursor: str | None = None


class SearchPayload(ApiModel):
    query: str
    entries: list[EntryPayload]
    next_cursor: str | None = None


class PreparedUploadPayload(ApiModel):
    path: str
    url: str
    method: str
    headers: dict[str, str]


class PreviewPayload(ApiModel):
    path: str
    url: str
    expires_at: datetime


class FileAttributesPayload(ApiModel):
    path: str
    size: int | None = None
    last_modified: datetime | None = None
    etag: str | None = None
    content_type: str | None = None
    cache_control: str | None = None
    content_disposition: str | None = None
    metadata: dict[str, str]
    expires_at: datetime | None = None


class FolderLockPayload(ApiModel):
    path: str
    operation: str
    from_path: str
    to_path: str
    started_at: datetime
    expires_at: datetime
    owner: str | None = None


def render_list_result(result: ListResult) -> Payload:
    return ListPayload(
        path=result.path,
        entries=[EntryPayload.from_entry(entry) for entry in result.entries],
        next_cursor=result.next_cursor,
    ).to_payload()


def render_search_result(result: SearchResult) -> Payload:
    return SearchPayload(
        query=result.query,
        entries=[EntryPayload.from_entry(entry) for entry in result.entries],
        next_cursor=result.next_cursor,
    ).to_payload()


def render_prepared_uploads(uploads: Sequence[PreparedUpload]) -> list[Payload]:
    return [
        PreparedUploadPayload(
            path=upload.path,
            url=upload.url,
            method=upload.method,
            headers=dict(upload.headers),
        ).to_payload()
        for upload in uploads
    ]


def render_preview_url(preview: PreviewUrl) -> Payload:
    return PreviewPayload(
        path=preview.path,
        url=preview.url,
        expires_at=preview.expires_at,
    ).to_payload()


def render_file_attributes(attributes: FileAttributes) -> Payload:
    """Render attributes; ``metadata`` is always present, even when empty."""
    return FileAttributesPayload(
        path=attributes.path,
        size=attributes.size,
        last_modified=attributes.last_modified,
        etag=attributes.etag,
        content_type=attributes.content_type,
        cache_control=attributes.cache_control,
        content_disposition=attributes.content_disposition,
        metadata=dict(attributes.metadata),
        expires_at=attributes.expires_at,
    ).to_payload()


def render_folder_lock(lock: FolderLock | None) -> Payload | None:
    """Render a folder lock; no lock renders as JSON ``null``."""
    if lock is None:
        return None
    return FolderLockPayload(
        path=lock.path,
        operation=lock.operation,
        from_path=lock.from_path,
        to_path=lock.to_path,
        started_at=lock.started_at,
        expires_at=lock.expires_at,
        owner=lock.owner,
    ).to_payload()
