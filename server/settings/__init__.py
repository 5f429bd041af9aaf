"""Main settings file.

Settings are split into ``components/`` by concern. Values come from
the environment or a ``config/.env`` file through ``python-decouple``.
"""

from server.settings.components.common import *  # noqa: F403
from server.settings.components.filemanager import *  # noqa: F403
from server.settings.components.logging import *  # noqa: F403
from server.settings.components.storages import *  # noqa: F403
