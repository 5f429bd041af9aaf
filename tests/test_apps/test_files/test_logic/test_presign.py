"""Tests for presigned upload and preview URLs."""

from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from server.apps.files.exceptions import (
    ForbiddenError,
    InvalidPathError,
    InvalidRequestError,
)
from server.apps.files.logic.authorization import FileManagerHooks
from server.apps.files.logic.presign import (
    MAX_EXPIRES_IN_SECONDS,
    http_date,
    validate_expires_in,
)
from server.apps.files.types import (
    AuthContext,
    PrepareUploadItem,
    PrepareUploadsOptions,
    PreviewOptions,
)

_CTX = AuthContext(user_id='u1')


def _query(url):
    return parse_qs(urlparse(url).query)


class TestValidateExpiresIn:
    """Tests for validate_expires_in."""

    @pytest.mark.parametrize('expires_in', [1, 300, MAX_EXPIRES_IN_SECONDS])
    def test_accepts_range(self, expires_in):
        """Test lifetimes within bounds are returned unchanged."""
        assert validate_expires_in(expires_in) == expires_in

    @pytest.mark.parametrize('expires_in', [0, -5, MAX_EXPIRES_IN_SECONDS + 1, True])
    def test_rejects_out_of_range(self, expires_in):
        """Test lifetimes outside bounds are rejected."""
        with pytest.raises(InvalidRequestError):
            validate_expires_in(expires_in)


def test_http_date():
    """Test HTTP dates are rendered in GMT."""
    moment = datetime(2026, 10, 21, 7, 28, tzinfo=UTC)

    assert http_date(moment) == 'Wed, 21 Oct 2026 07:28:00 GMT'
    assert http_date(moment.replace(tzinfo=None)) == http_date(moment)


@pytest.mark.asyncio
class TestPrepareUploads:
    """Tests for FileManager.prepare_uploads."""

    async def test_presigns_put_per_item(self, make_manager, bucket_keys):
        """Test one PUT URL per item, nothing written to the store."""
        manager = make_manager(root_prefix='tenant')

        uploads = await manager.prepare_uploads(
            PrepareUploadsOptions(
                items=[
                    PrepareUploadItem(path='/docs/a.txt', content_type='text/plain'),
                    PrepareUploadItem(path='b.bin'),
                ],
            ),
            _CTX,
        )

        assert [upload.path for upload in uploads] == ['docs/a.txt', 'b.bin']
        assert all(upload.method == 'PUT' for upload in uploads)
        assert '/tenant/docs/a.txt' in urlparse(uploads[0].url).path
        assert uploads[0].headers == {'Content-Type': 'text/plain'}
        assert uploads[1].headers == {}
        assert _query(uploads[0].url)['X-Amz-Expires'] == ['300']
        assert bucket_keys() == []

    async def test_signed_headers(self, manager):
        """Test requested attributes come back as required headers."""
        expires_at = datetime(2030, 1, 1, tzinfo=UTC)

        uploads = await manager.prepare_uploads(
            PrepareUploadsOptions(
                items=[
                    PrepareUploadItem(
                        path='a.pdf',
                        content_type='application/pdf',
                        cache_control='max-age=60',
                        content_disposition='attachment',
                        metadata={'owner': 'alice'},
                        expires_at=expires_at,
                    ),
                ],
                expires_in_seconds=60,
            ),
            _CTX,
        )

        assert uploads[0].headers == {
            'Content-Type': 'application/pdf',
            'Cache-Control': 'max-age=60',
            'Content-Disposition': 'attachment',
            'Expires': 'Tue, 01 Jan 2030 00:00:00 GMT',
            'x-amz-meta-owner': 'alice',
        }
        assert _query(uploads[0].url)['X-Amz-Expires'] == ['60']

    async def test_rejects_folder_path(self, manager):
        """Test uploads need a file path."""
        with pytest.raises(InvalidPathError):
            await manager.prepare_uploads(
                PrepareUploadsOptions(items=[PrepareUploadItem(path='/')]),
                _CTX,
            )

    async def test_rejects_bad_lifetime(self, manager):
        """Test the URL lifetime is validated."""
        with pytest.raises(InvalidRequestError):
            await manager.prepare_uploads(
                PrepareUploadsOptions(
                    items=[PrepareUploadItem(path='a.txt')],
                    expires_in_seconds=0,
                ),
                _CTX,
            )

    async def test_forbidden_item_aborts(self, make_manager):
        """Test authorization runs per item."""
        manager = make_manager(
            hooks=FileManagerHooks(
                allow_action=lambda args: not args.path.startswith('private/'),
            ),
        )

        with pytest.raises(ForbiddenError):
            await manager.prepare_uploads(
                PrepareUploadsOptions(
                    items=[
                        PrepareUploadItem(path='ok.txt'),
                        PrepareUploadItem(path='private/no.txt'),
                    ],
                ),
                _CTX,
            )


@pytest.mark.asyncio
class TestPreviewUrl:
    """Tests for FileManager.get_preview_url."""

    async def test_attachment_by_default(self, manager):
        """Test downloads default to an attachment disposition."""
        before = datetime.now(tz=UTC)

        preview = await manager.get_preview_url(
            PreviewOptions(path='docs/a.pdf', expires_in_seconds=120),
            _CTX,
        )

        query = _query(preview.url)
        assert preview.path == 'docs/a.pdf'
        assert query['response-content-disposition'] == ['attachment']
        assert query['X-Amz-Expires'] == ['120']
        assert before + timedelta(seconds=119) <= preview.expires_at
        assert preview.expires_at <= datetime.now(tz=UTC) + timedelta(seconds=121)

    async def test_inline(self, manager):
        """Test inline previews request an inline disposition."""
        preview = await manager.get_preview_url(
            PreviewOptions(path='a.png', inline=True),
            _CTX,
        )

        assert _query(preview.url)['response-content-disposition'] == ['inline']

    async def test_rejects_traversal(self, manager):
        """Test preview paths are validated."""
        with pytest.raises(InvalidPathError):
            await manager.get_preview_url(PreviewOptions(path='../a.png'), _CTX)
