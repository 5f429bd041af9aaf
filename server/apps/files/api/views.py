"""Async JSON endpoints for the folder manager.

Every route is a ``POST`` with a JSON object body. Mutations answer
``204`` with an empty body, reads answer ``200`` with a JSON payload and
failures answer ``{"error": {"code": ..., "message": ...}}``.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Final

from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from server.apps.files.api import schemas
from server.apps.files.exceptions import FileManagerError, InvalidRequestError
from server.apps.files.infrastructure.factory import build_manager_from_settings
from server.apps.files.logic.manager import FileManager
from server.apps.files.types import AuthContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Route:
    """Binds a request schema to a manager method and a result renderer.

    Routes without a renderer are mutations answered with ``204``.
    """

    schema: type[schemas.ApiRequest]
    call: Callable[[FileManager, Any, AuthContext], Awaitable[Any]]
    render: Callable[[Any], Any] | None = None


ROUTES: Final[dict[str, Route]] = {
    'list': Route(
        schemas.ListRequest,
        FileManager.list,
        schemas.render_list_result,
    ),
    'search': Route(
        schemas.SearchRequest,
        FileManager.search,
        schemas.render_search_result,
    ),
    'folder/create': Route(
        schemas.CreateFolderRequest,
        FileManager.create_folder,
    ),
    'folder/delete': Route(
        schemas.DeleteFolderRequest,
        FileManager.delete_folder,
    ),
    'folder/lock/get': Route(
        schemas.FolderLockRequest,
        FileManager.get_folder_lock,
        schemas.render_folder_lock,
    ),
    'files/delete': Route(
        schemas.DeleteFilesRequest,
        FileManager.delete_files,
    ),
    'files/copy': Route(schemas.CopyRequest, FileManager.copy),
    'files/move': Route(schemas.CopyRequest, FileManager.move),
    'upload/prepare': Route(
        schemas.PrepareUploadsRequest,
        FileManager.prepare_uploads,
        schemas.render_prepared_uploads,
    ),
    'preview': Route(
        schemas.PreviewRequest,
        FileManager.get_preview_url,
        schemas.render_preview_url,
    ),
    'file/attributes/get': Route(
        schemas.FileAttributesRequest,
        FileManager.get_file_attributes,
        schemas.render_file_attributes,
    ),
    'file/attributes/set': Route(
        schemas.SetFileAttributesRequest,
        FileManager.set_file_attributes,
        schemas.render_file_attributes,
    ),
}


def get_file_manager() -> FileManager:
    """Get the manager serving API requests."""
    return build_manager_from_settings()


def get_auth_context(request: HttpRequest) -> AuthContext:
    """Build the caller context from the configured user id header.

    Args:
        request: Incoming request.

    Returns:
        AuthContext, anonymous when the header is absent or blank.
    """
    user_id = request.headers.get(settings.FILE_MANAGER_USER_ID_HEADER)
    return AuthContext(user_id=user_id or None)


def error_response(status: int, code: str, message: str) -> JsonResponse:
    """Build the JSON error body shared by every failure.

    Args:
        status: HTTP status code.
        code: Machine-readable error code (e.g., ``invalid_body``).
        message: Human-readable description.

    Returns:
        Response carrying ``{"error": {"code": ..., "message": ...}}``.
    """
    return JsonResponse(
        {'error': {'code': code, 'message': message}},
        status=status,
    )


def _read_json(request: HttpRequest) -> Any:
    if not request.body:
        return None
    try:
        return json.loads(request.body)
    except ValueError as error:
        raise InvalidRequestError('Expected JSON object body') from error


@csrf_exempt
async def file_manager_api(request: HttpRequest, route: str) -> HttpResponse:
    """Dispatch one API call to the folder manager.

    Args:
        request: Incoming request.
        route: Route below the API base path (e.g., ``folder/create``).

    Returns:
        JSON response, or empty ``204`` for mutations.
    """
    endpoint = ROUTES.get(route.strip('/'))
    if endpoint is None or request.method != 'POST':
        return error_response(404, 'not_found', 'Route not found')

    try:
        options = schemas.parse_body(
            endpoint.schema,
            _read_json(request),
        ).to_options()
        result = await endpoint.call(
            get_file_manager(),
            options,
            get_auth_context(request),
        )
    except FileManagerError as error:
        return error_response(error.status, error.code, error.message)
    except Exception as error:
        logger.exception('Unhandled error in file manager route %s', route)
        return error_response(500, 'internal_error', str(error))

    if endpoint.render is None:
        return HttpResponse(status=204)
    return JsonResponse(endpoint.render(result), safe=False)
