"""Tests for the JSON API views."""

import json

import pytest

from server.apps.files.api import views
from server.apps.files.logic.authorization import FileManagerHooks
from server.apps.files.logic.locks import dump_lock, new_lock

_BUCKET = 'files'


@pytest.fixture
def serve_manager(monkeypatch, manager):
    """Serve API requests with the mocked-bucket manager."""
    monkeypatch.setattr(views, 'get_file_manager', lambda: manager)
    return manager


@pytest.fixture
def call_api(async_client):
    """POST a JSON body to one API route.

    Returns:
        Coroutine function returning the response.
    """

    async def caller(route, body=None, **kwargs):
        payload = '' if body is None else json.dumps(body)
        return await async_client.post(
            f'/api/files/{route}',
            payload,
            content_type='application/json',
            **kwargs,
        )

    return caller


def _error(response):
    return json.loads(response.content)['error']


@pytest.mark.asyncio
@pytest.mark.usefixtures('serve_manager')
class TestRouting:
    """Tests for dispatching and error rendering."""

    async def test_unknown_route(self, call_api):
        """Test unknown routes answer not_found."""
        response = await call_api('nope', {})

        assert response.status_code == 404
        assert _error(response) == {
            'code': 'not_found',
            'message': 'Route not found',
        }

    async def test_get_is_not_routed(self, async_client):
        """Test only POST is accepted."""
        response = await async_client.get('/api/files/list')

        assert response.status_code == 404
        assert _error(response)['code'] == 'not_found'

    async def test_invalid_json(self, async_client):
        """Test malformed bodies answer invalid_body."""
        response = await async_client.post(
            '/api/files/list',
            '{oops',
            content_type='application/json',
        )

        assert response.status_code == 400
        assert _error(response)['code'] == 'invalid_body'

    async def test_missing_body(self, call_api):
        """Test an empty body is not a JSON object."""
        response = await call_api('folder/create')

        assert response.status_code == 400
        assert _error(response) == {
            'code': 'invalid_body',
            'message': 'Expected JSON object body',
        }

    async def test_invalid_field(self, call_api):
        """Test field errors name the field."""
        response = await call_api('folder/create', {'path': 3})

        assert response.status_code == 400
        assert _error(response)['message'] == (
            "Invalid 'path': Input should be a valid string"
        )

    async def test_invalid_path(self, call_api):
        """Test path errors map to invalid_path."""
        response = await call_api('folder/create', {'path': '../etc'})

        assert response.status_code == 400
        assert _error(response)['code'] == 'invalid_path'

    async def test_unexpected_error(self, call_api, monkeypatch):
        """Test unexpected failures answer internal_error."""

        def broken():
            raise RuntimeError('boom')

        monkeypatch.setattr(views, 'get_file_manager', broken)

        response = await call_api('list', {'path': ''})

        assert response.status_code == 500
        assert _error(response) == {'code': 'internal_error', 'message': 'boom'}

    async def test_trailing_slash_route(self, call_api):
        """Test a trailing slash on the route is ignored."""
        response = await call_api('list/', {'path': ''})

        assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.usefixtures('serve_manager')
class TestRoutes:
    """Tests for each API route."""

    async def test_create_then_list(self, call_api):
        """Test mutations answer 204 and reads answer JSON."""
        created = await call_api('folder/create', {'path': 'docs'})
        listed = await call_api('list', {'path': ''})

        assert created.status_code == 204
        assert created.content == b''
        assert listed.status_code == 200
        assert json.loads(listed.content) == {
            'path': '',
            'entries': [{'type': 'folder', 'path': 'docs/', 'name': 'docs'}],
        }

    async def test_list_file_entry(self, call_api, put_objects):
        """Test file entries render camelCase fields."""
        put_objects('a.txt')

        payload = json.loads((await call_api('list', {'path': ''})).content)

        entry = payload['entries'][0]
        assert entry['type'] == 'file'
        assert entry['path'] == 'a.txt'
        assert entry['size'] == len(b'a.txt')
        assert 'lastModified' in entry
        assert 'etag' in entry

    async def test_list_paginates(self, call_api, put_objects):
        """Test the cursor is exposed as nextCursor."""
        put_objects('a.txt', 'b.txt', 'c.txt')

        first = json.loads(
            (await call_api('list', {'path': '', 'limit': 2})).content,
        )
        second = json.loads((await call_api('list', {
            'path': '',
            'limit': 2,
            'cursor': first['nextCursor'],
        })).content)

        assert [entry['name'] for entry in first['entries']] == ['a.txt', 'b.txt']
        assert [entry['name'] for entry in second['entries']] == ['c.txt']
        assert 'nextCursor' not in second

    async def test_search(self, call_api, put_objects):
        """Test search matches names case-insensitively."""
        put_objects('docs/Report.pdf', 'docs/notes.txt')

        response = await call_api('search', {'query': 'report'})

        payload = json.loads(response.content)
        assert payload['query'] == 'report'
        assert [entry['path'] for entry in payload['entries']] == [
            'docs/Report.pdf',
        ]

    async def test_delete_folder_not_empty(self, call_api, put_objects):
        """Test non-recursive deletes of populated folders answer 409."""
        put_objects('docs/', 'docs/a.txt')

        response = await call_api('folder/delete', {'path': 'docs'})

        assert response.status_code == 409
        assert _error(response)['code'] == 'folder_not_empty'

    async def test_delete_folder_recursive(self, call_api, put_objects, bucket_keys):
        """Test recursive deletes remove the subtree."""
        put_objects('docs/', 'docs/a.txt', 'keep.txt')

        response = await call_api(
            'folder/delete',
            {'path': 'docs', 'recursive': True},
        )

        assert response.status_code == 204
        assert bucket_keys() == ['keep.txt']

    async def test_delete_files_items(self, call_api, put_objects, bucket_keys):
        """Test files can be deleted by item objects."""
        put_objects('a.txt', 'b.txt', 'c.txt')

        response = await call_api('files/delete', {
            'paths': ['a.txt'],
            'items': [{'path': 'b.txt'}],
        })

        assert response.status_code == 204
        assert bucket_keys() == ['c.txt']

    async def test_copy_and_move(self, call_api, put_objects, bucket_keys):
        """Test copy keeps and move removes the source."""
        put_objects('a.txt')

        copied = await call_api('files/copy', {'fromPath': 'a.txt', 'toPath': 'b.txt'})
        moved = await call_api('files/move', {'fromPath': 'b.txt', 'toPath': 'c.txt'})

        assert copied.status_code == 204
        assert moved.status_code == 204
        assert bucket_keys() == ['a.txt', 'c.txt']

    async def test_prepare_uploads(self, call_api, bucket_keys):
        """Test upload preparation returns one entry per item."""
        response = await call_api('upload/prepare', {
            'items': [{'path': 'a.txt', 'contentType': 'text/plain'}],
            'expiresInSeconds': 60,
        })

        payload = json.loads(response.content)
        assert response.status_code == 200
        assert payload[0]['path'] == 'a.txt'
        assert payload[0]['method'] == 'PUT'
        assert payload[0]['headers'] == {'Content-Type': 'text/plain'}
        assert bucket_keys() == []

    async def test_preview(self, call_api):
        """Test preview answers a URL and its expiry."""
        response = await call_api('preview', {'path': 'a.png', 'inline': True})

        payload = json.loads(response.content)
        assert payload['path'] == 'a.png'
        assert 'response-content-disposition=inline' in payload['url']
        assert 'expiresAt' in payload

    async def test_file_attributes(self, call_api, s3_client):
        """Test attributes are read and rewritten."""
        s3_client.put_object(
            Bucket=_BUCKET,
            Key='a.txt',
            Body=b'hi',
            ContentType='text/plain',
        )

        updated = await call_api('file/attributes/set', {
            'path': 'a.txt',
            'cacheControl': 'no-cache',
            'metadata': {'owner': 'alice'},
        })
        read = await call_api('file/attributes/get', {'path': 'a.txt'})

        assert updated.status_code == 200
        payload = json.loads(read.content)
        assert payload['contentType'] == 'text/plain'
        assert payload['cacheControl'] == 'no-cache'
        assert payload['metadata'] == {'owner': 'alice'}
        assert payload['size'] == 2

    async def test_file_attributes_null_clears(self, call_api, s3_client):
        """Test null clears an attribute and absent keys keep theirs."""
        s3_client.put_object(
            Bucket=_BUCKET,
            Key='a.txt',
            Body=b'hi',
            ContentType='text/plain',
            CacheControl='max-age=60',
            Metadata={'owner': 'alice'},
        )

        response = await call_api('file/attributes/set', {
            'path': 'a.txt',
            'cacheControl': None,
        })

        payload = json.loads(response.content)
        assert response.status_code == 200
        assert 'cacheControl' not in payload
        assert payload['contentType'] == 'text/plain'
        assert payload['metadata'] == {'owner': 'alice'}

    async def test_file_attributes_missing(self, call_api):
        """Test missing files answer 404."""
        response = await call_api('file/attributes/get', {'path': 'ghost.txt'})

        assert response.status_code == 404
        assert _error(response)['code'] == 'not_found'

    async def test_folder_lock(self, call_api, s3_client):
        """Test lock lookups answer null or the live lock."""
        absent = await call_api('folder/lock/get', {'path': 'docs'})
        s3_client.put_object(
            Bucket=_BUCKET,
            Key='.locks/docs/move.lock',
            Body=dump_lock(new_lock('docs/', 'x/', 60, owner='alice')),
        )
        present = await call_api('folder/lock/get', {'path': 'docs'})

        assert json.loads(absent.content) is None
        payload = json.loads(present.content)
        assert payload['fromPath'] == 'docs/'
        assert payload['toPath'] == 'x/'
        assert payload['owner'] == 'alice'


@pytest.mark.asyncio
class TestAuthContext:
    """Tests for caller identity and authorization errors."""

    async def test_user_id_header(self, call_api, make_manager, monkeypatch):
        """Test the configured header reaches the hooks."""
        seen = []

        def authorize(args):
            seen.append(args.ctx.user_id)
            return args.ctx.user_id is not None

        manager = make_manager(hooks=FileManagerHooks(authorize=authorize))
        monkeypatch.setattr(views, 'get_file_manager', lambda: manager)

        anonymous = await call_api('list', {'path': ''})
        known = await call_api('list', {'path': ''}, headers={'X-User-Id': 'u1'})

        assert anonymous.status_code == 401
        assert _error(anonymous) == {
            'code': 'unauthorized',
            'message': 'Unauthorized',
        }
        assert known.status_code == 200
        assert seen == [None, 'u1']

    async def test_forbidden(self, call_api, make_manager, monkeypatch):
        """Test allow_action rejections answer 403."""
        manager = make_manager(
            hooks=FileManagerHooks(allow_action=lambda args: False),
        )
        monkeypatch.setattr(views, 'get_file_manager', lambda: manager)

        response = await call_api('list', {'path': ''})

        assert response.status_code == 403
        assert _error(response)['code'] == 'forbidden'

    async def test_custom_header(self, call_api, make_manager, monkeypatch, settings):
        """Test the user id header name is configurable."""
        settings.FILE_MANAGER_USER_ID_HEADER = 'X-Account'
        manager = make_manager(
            hooks=FileManagerHooks(authorize=lambda args: args.ctx.user_id == 'acc'),
        )
        monkeypatch.setattr(views, 'get_file_manager', lambda: manager)

        response = await call_api('list', {'path': ''}, headers={'X-Account': 'acc'})

        assert response.status_code == 200
