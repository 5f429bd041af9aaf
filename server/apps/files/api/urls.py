"""URL configuration for the folder manager API."""

from django.urls import re_path

from server.apps.files.api import views

app_name = 'files'

urlpatterns = [
    re_path(r'^(?P<route>.+)$', views.file_manager_api, name='api'),
]
