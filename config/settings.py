"""
Django settings for the sales target validator.

Secrets and deployment values come from the environment, optionally loaded
from a .env file.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-sales-target-validator-dev-key')
DEBUG = os.getenv('DJANGO_DEBUG', 'false').lower() in ('1', 'true', 'yes')
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'targets',
]

MIDDLEWARE = [
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'

# Validation history is not stored
DATABASES = {}

USE_TZ = True
TIME_ZONE = 'UTC'

DATA_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024
FILE_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
        'rest_framework.parsers.MultiPartParser',
        'rest_framework.parsers.FormParser',
    ],
}

LOG_LEVEL = os.getenv('TARGETS_LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'targets': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
}

TARGET_VALIDATOR = {
    'OPENAI_API_KEY': os.getenv('OPENAI_API_KEY', ''),
    'OPENAI_BASE_URL': os.getenv('OPENAI_BASE_URL') or None,
    'VERIFIER_MODEL': os.getenv('TARGETS_VERIFIER_MODEL', 'gpt-4o-mini'),
    'VERIFIER_TEMPERATURE': float(os.getenv('TARGETS_VERIFIER_TEMPERATURE', 0.1)),
    'VERIFIER_MAX_TOKENS': int(os.getenv('TARGETS_VERIFIER_MAX_TOKENS', 1000)),
    'VERIFIER_TIMEOUT': int(os.getenv('TARGETS_VERIFIER_TIMEOUT', 60)),
    'SIGNATURE_MODEL': os.getenv('TARGETS_SIGNATURE_MODEL', 'gpt-4o-mini'),
    'NUMERIC_RELATIVE_TOLERANCE': float(os.getenv('TARGETS_NUMERIC_TOLERANCE', 0.10)),
    'USE_OCR_FALLBACK': os.getenv('TARGETS_USE_OCR_FALLBACK', 'true').lower() in ('1', 'true', 'yes'),
}
