"""Authorization gate evaluated before every manager action."""

import inspect
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Protocol, TypeVar, final

from server.apps.files.exceptions import ForbiddenError, UnauthorizedError
from server.apps.files.types import (
    AuthorizationMode,
    AuthorizeArgs,
    FileEntry,
    FolderEntry,
)

_ResultT = TypeVar('_ResultT')

logger = logging.getLogger(__name__)


class Authorizer(Protocol):
    """Hook returning ``False`` to reject the caller (401)."""

    def __call__(
        self,
        args: AuthorizeArgs,
    ) -> bool | None | Awaitable[bool | None]: ...


class ActionAllower(Protocol):
    """Hook returning ``False`` to forbid the action (403)."""

    def __call__(self, args: AuthorizeArgs) -> bool | Awaitable[bool]: ...


class FileDecorator(Protocol):
    """Hook returning the opaque ``extra`` payload of a file entry."""

    def __call__(
        self,
        entry: FileEntry,
        key: str,
    ) -> object | Awaitable[object]: ...


class FolderDecorator(Protocol):
    """Hook returning the opaque ``extra`` payload of a folder entry."""

    def __call__(
        self,
        entry: FolderEntry,
        prefix: str,
    ) -> object | Awaitable[object]: ...


@dataclass(frozen=True, slots=True)
class FileManagerHooks:
    """Caller supplied callbacks; each may be sync or async."""

    authorize: Authorizer | None = None
    allow_action: ActionAllower | None = None
    decorate_file: FileDecorator | None = None
    decorate_folder: FolderDecorator | None = None


async def resolve(value: _ResultT | Awaitable[_ResultT]) -> _ResultT:
    """Await a hook result if the hook was asynchronous.

    Args:
        value: Plain hook result or awaitable returned by an async hook.

    Returns:
        The settled hook result.
    """
    if inspect.isawaitable(value):
        return await value
    return value


@final
class AuthorizationGate:
    """Composes the optional hooks with a default authorization mode.

    Evaluation order:
    1. ``authorize`` returning ``False`` raises ``UnauthorizedError``.
    2. ``allow_action`` returning ``False`` raises ``ForbiddenError``.
    3. With neither hook configured, deny-by-default raises
       ``UnauthorizedError``.
    """

    def __init__(
        self,
        authorizer: Authorizer | None = None,
        action_allower: ActionAllower | None = None,
        mode: AuthorizationMode = AuthorizationMode.DENY_BY_DEFAULT,
    ) -> None:
        """Initialize authorization gate.

        Args:
            authorizer: Optional ``authorize`` hook.
            action_allower: Optional ``allow_action`` hook.
            mode: Fallback used when no hook is configured.
        """
        self._authorizer = authorizer
        self._action_allower = action_allower
        self._mode = mode

    @property
    def mode(self) -> AuthorizationMode:
        """Get the fallback authorization mode."""
        return self._mode

    async def check(self, args: AuthorizeArgs) -> None:
        """Run the gate for one action.

        Args:
            args: Action, path(s) and caller context.

        Raises:
            UnauthorizedError: If ``authorize`` rejects, or no hook is
                configured and the mode is deny-by-default.
            ForbiddenError: If ``allow_action`` rejects.
        """
        if self._authorizer is not None:
            authorized = await resolve(self._authorizer(args))
            if authorized is False:
                logger.warning(
                    'Unauthorized %s (user: %s, path: %s)',
                    args.action,
                    args.ctx.user_id,
                    _describe_target(args),
                )
                raise UnauthorizedError('Unauthorized')

        if self._action_allower is not None:
            allowed = await resolve(self._action_allower(args))
            if allowed is False:
                logger.warning(
                    'Forbidden %s (user: %s, path: %s)',
                    args.action,
                    args.ctx.user_id,
                    _describe_target(args),
                )
                raise ForbiddenError('Forbidden')

        has_hooks = (
            self._authorizer is not None
            or self._action_allower is not None
        )
        if not has_hooks and self._mode == AuthorizationMode.DENY_BY_DEFAULT:
            logger.warning(
                'Denied %s by default, no authorization hook configured',
                args.action,
            )
            raise UnauthorizedError('Unauthorized')


def _describe_target(args: AuthorizeArgs) -> str:
    if args.path is not None:
        return args.path
    return f'{args.from_path} -> {args.to_path}'
