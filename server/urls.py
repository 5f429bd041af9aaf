"""Main URL mapping configuration file."""

from django.conf import settings
from django.urls import include, path

_base_path = settings.FILE_MANAGER_BASE_PATH.strip('/')

urlpatterns = [
    path(
        f'{_base_path}/',
        include('server.apps.files.api.urls', namespace='files'),
    ),
]
