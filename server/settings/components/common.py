"""Django settings shared by every environment."""

from server.settings.components import config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='insecure-development-key')

DEBUG = config('DJANGO_DEBUG', cast=bool, default=False)

ALLOWED_HOSTS = config(
    'DJANGO_ALLOWED_HOSTS',
    cast=lambda hosts: [host.strip() for host in hosts.split(',') if host],
    default='localhost,127.0.0.1,testserver',
)

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'server.apps.files',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'server.urls'

ASGI_APPLICATION = 'server.asgi.application'

# The file manager keeps no relational state
DATABASES = {}

USE_TZ = True
TIME_ZONE = 'UTC'
