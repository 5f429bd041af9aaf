"""Folder manager settings."""

from server.settings.components import config

# Mount point of the JSON API (e.g., ``/api/files``)
FILE_MANAGER_BASE_PATH = config('FILE_MANAGER_BASE_PATH', default='api/files')

# Key prefix every caller path is resolved under
FILE_MANAGER_ROOT_PREFIX = config('FILE_MANAGER_ROOT_PREFIX', default='')

# Decision when no authorization hook is configured
FILE_MANAGER_AUTHORIZATION_MODE = config(
    'FILE_MANAGER_AUTHORIZATION_MODE',
    default='deny-by-default',
)

# Caller identity
FILE_MANAGER_USER_ID_HEADER = config(
    'FILE_MANAGER_USER_ID_HEADER',
    default='X-User-Id',
)
FILE_MANAGER_REQUIRE_USER_ID = config(
    'FILE_MANAGER_REQUIRE_USER_ID',
    cast=bool,
    default=False,
)

# Advisory locks for folder moves
FILE_MANAGER_LOCK_FOLDER_MOVES = config(
    'FILE_MANAGER_LOCK_FOLDER_MOVES',
    cast=bool,
    default=False,
)
FILE_MANAGER_LOCK_PREFIX = config('FILE_MANAGER_LOCK_PREFIX', default='.locks/')
FILE_MANAGER_LOCK_TTL_SECONDS = config(
    'FILE_MANAGER_LOCK_TTL_SECONDS',
    cast=int,
    default=300,
)
