"""Tests for the authorization gate."""

import pytest

from server.apps.files.exceptions import ForbiddenError, UnauthorizedError
from server.apps.files.logic.authorization import AuthorizationGate, resolve
from server.apps.files.types import (
    Action,
    AuthContext,
    AuthorizationMode,
    AuthorizeArgs,
)


def _args(action=Action.LIST, user_id='u1'):
    return AuthorizeArgs(
        action=action,
        ctx=AuthContext(user_id=user_id),
        path='docs/',
    )


@pytest.mark.asyncio
class TestAuthorizationGate:
    """Tests for AuthorizationGate.check."""

    async def test_deny_by_default_without_hooks(self):
        """Test deny-by-default rejects when no hook is configured."""
        gate = AuthorizationGate(mode=AuthorizationMode.DENY_BY_DEFAULT)

        with pytest.raises(UnauthorizedError):
            await gate.check(_args())

    async def test_allow_by_default_without_hooks(self):
        """Test allow-by-default passes when no hook is configured."""
        gate = AuthorizationGate(mode=AuthorizationMode.ALLOW_BY_DEFAULT)

        await gate.check(_args())

    async def test_authorize_false_is_unauthorized(self):
        """Test authorize returning False yields 401."""
        gate = AuthorizationGate(authorizer=lambda args: False)

        with pytest.raises(UnauthorizedError) as exc_info:
            await gate.check(_args())

        assert exc_info.value.status == 401

    async def test_authorize_none_passes_under_deny_by_default(self):
        """Test a configured hook overrides the fallback mode."""
        gate = AuthorizationGate(
            authorizer=lambda args: None,
            mode=AuthorizationMode.DENY_BY_DEFAULT,
        )

        await gate.check(_args())

    async def test_allow_action_false_is_forbidden(self):
        """Test allow_action returning False yields 403."""
        gate = AuthorizationGate(action_allower=lambda args: False)

        with pytest.raises(ForbiddenError) as exc_info:
            await gate.check(_args())

        assert exc_info.value.status == 403

    async def test_authorize_checked_before_allow_action(self):
        """Test 401 wins over 403 when both hooks reject."""
        calls = []

        def allow_action(args):
            calls.append(args.action)
            return False

        gate = AuthorizationGate(
            authorizer=lambda args: False,
            action_allower=allow_action,
        )

        with pytest.raises(UnauthorizedError):
            await gate.check(_args())

        assert calls == []

    async def test_async_hooks(self):
        """Test hooks may be coroutines."""

        async def authorize(args):
            return args.ctx.user_id is not None

        async def allow_action(args):
            return args.action != Action.FOLDER_DELETE

        gate = AuthorizationGate(
            authorizer=authorize,
            action_allower=allow_action,
        )

        await gate.check(_args(Action.LIST))
        with pytest.raises(ForbiddenError):
            await gate.check(_args(Action.FOLDER_DELETE))
        with pytest.raises(UnauthorizedError):
            await gate.check(_args(user_id=None))

    async def test_hooks_receive_action_and_context(self):
        """Test hooks see the action, paths and caller context."""
        seen = []
        gate = AuthorizationGate(action_allower=seen.append)

        await gate.check(_args(Action.SEARCH, user_id='alice'))

        assert seen[0].action == Action.SEARCH
        assert seen[0].ctx.user_id == 'alice'
        assert seen[0].path == 'docs/'

    async def test_resolve_plain_and_awaitable(self):
        """Test resolve settles sync and async hook results alike."""

        async def produce():
            return 'async'

        assert await resolve('plain') == 'plain'
        assert await resolve(produce()) == 'async'
