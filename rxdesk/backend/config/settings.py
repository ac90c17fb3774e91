import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
DEBUG = os.getenv('DEBUG', '0') == '1'
ALLOWED_HOSTS = ['*']

INSTALLED_APPS = [
    'frontdesk',
]

MIDDLEWARE = [
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {},
    },
]

# No local database: every record lives in the prescription backend.
DATABASES = {}

# Drafts and filter state are kept per browser session
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}
SESSION_ENGINE = 'django.contrib.sessions.backends.cache'

TIME_ZONE = 'UTC'
USE_TZ = True

# Prescription backend
BACKEND_API_URL = os.getenv('BACKEND_API_URL', 'http://localhost:8080/api')
BACKEND_TIMEOUT = float(os.getenv('BACKEND_TIMEOUT', '10'))

# Front desk rules
PATIENT_ID_PREFIX = os.getenv('PATIENT_ID_PREFIX', 'P')
HISTORY_OLDER_THAN_YEARS = int(os.getenv('HISTORY_OLDER_THAN_YEARS', '2'))

# Text download page size, in characters
DOCUMENT_PAGE_WIDTH = int(os.getenv('DOCUMENT_PAGE_WIDTH', '80'))
DOCUMENT_PAGE_HEIGHT = int(os.getenv('DOCUMENT_PAGE_HEIGHT', '60'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'frontdesk': {
            'handlers': ['console'],
            'level': os.getenv('LOG_LEVEL', 'INFO'),
        },
    },
}
