"""
Django settings for the ZETA Testfachdienst.

Values are read from the environment so the service can be configured
per deployment without touching source code.  A `.env` file next to
``manage.py`` is loaded for local development; in a cluster you should
set environment variables instead.
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv  # type: ignore

# -----------------------------------------------------------------------------
# Base & .env loading
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


# -----------------------------------------------------------------------------
# Core flags & security baseline
# -----------------------------------------------------------------------------
ENV = os.getenv("ENV", "dev")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = _flag("DEBUG")

# The test service sits behind an ingress; any host is accepted unless narrowed.
ALLOWED_HOSTS: list[str] = [
    h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()
]

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv("SECRET_KEY") or "replace-me-with-a-secure-secret-key"

if ENV == "prod":
    if DEBUG:
        raise RuntimeError("DEBUG must be 0 in prod")
    if SECRET_KEY == "replace-me-with-a-secure-secret-key":
        raise RuntimeError("SECRET_KEY must be set securely in prod")

# -----------------------------------------------------------------------------
# Applications
# -----------------------------------------------------------------------------
INSTALLED_APPS = [
    "daphne",
    "django_prometheus",
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party apps
    "channels",
    "rest_framework",
    "drf_yasg",
    # Local apps
    "erezept",
]

MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

ROOT_URLCONF = "testfachdienst.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "testfachdienst.wsgi.application"
ASGI_APPLICATION = "testfachdienst.asgi.application"

# -----------------------------------------------------------------------------
# Database
# Priority:
#   1) DATABASE_URL (parsed by dj_database_url)
#   2) SQLite fallback
# -----------------------------------------------------------------------------
DB_CONN_MAX_AGE = int(os.getenv("DB_CONN_MAX_AGE", "120"))

database_url = os.getenv("DATABASE_URL", "").strip()
if database_url:
    import dj_database_url  # type: ignore

    DATABASES = {
        "default": dj_database_url.parse(database_url, conn_max_age=DB_CONN_MAX_AGE)
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": (BASE_DIR / "db.sqlite3").as_posix(),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------------------------------
# Internationalization & static
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# -----------------------------------------------------------------------------
# DRF
# Authentication is disabled for the test service: every endpoint is open.
# -----------------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
        "rest_framework.renderers.BrowsableAPIRenderer",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "erezept.exceptions.api_exception_handler",
}

# Frontends call the API both with and without a trailing slash; routes accept both.
APPEND_SLASH = False

# Path prefix the service is mounted under (e.g. "/achelos_testfachdienst").
# Applied to routes, generated Location headers and STOMP destinations.
SERVER_CONTEXT_PATH = os.getenv("SERVER_CONTEXT_PATH", "")

# -----------------------------------------------------------------------------
# Swagger / OpenAPI
# -----------------------------------------------------------------------------
SWAGGER_SETTINGS = {
    "DEFAULT_INFO": "testfachdienst.urls.api_info",
    "SECURITY_DEFINITIONS": {},
    "USE_SESSION_AUTH": False,
}

# -----------------------------------------------------------------------------
# CORS (safe-by-default: none)
# -----------------------------------------------------------------------------
CORS_ALLOWED_ORIGINS = [
    h.strip() for h in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",") if h.strip()
]

# -----------------------------------------------------------------------------
# Security & proxy headers
# -----------------------------------------------------------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
USE_X_FORWARDED_HOST = True

# -----------------------------------------------------------------------------
# Channels / WebSocket (STOMP)
# -----------------------------------------------------------------------------
REDIS_URL = os.getenv("REDIS_URL", "")
CHANNEL_LAYERS = {
    "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}
}
if REDIS_URL:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {"hosts": [REDIS_URL]},
        }
    }

# -----------------------------------------------------------------------------
# OTLP self disclosure export
# -----------------------------------------------------------------------------
OTLP_EXPORT_LOGS_GRPC_ENABLED = _flag("OTLP_EXPORT_LOGS_GRPC_ENABLED")
OTLP_EXPORT_LOGS_GRPC_HOST = os.getenv("OTLP_EXPORT_LOGS_GRPC_HOST", "")
OTLP_EXPORT_LOGS_HTTP_ENABLED = _flag("OTLP_EXPORT_LOGS_HTTP_ENABLED")
OTLP_EXPORT_LOGS_HTTP_HOST = os.getenv("OTLP_EXPORT_LOGS_HTTP_HOST", "")
OTLP_EXPORT_LOGS_INTERVAL_SECONDS = int(os.getenv("OTLP_EXPORT_LOGS_INTERVAL_SECONDS", "60"))

# Static attributes attached to every self disclosure record ("k=v,k=v").
SELF_DISCLOSURE_RESOURCE_ATTRIBUTES: dict[str, str] = {}
for pair in os.getenv("SELF_DISCLOSURE_ATTRIBUTES", "service_name=zeta-testfachdienst").split(","):
    key, sep, value = pair.partition("=")
    if sep and key.strip():
        SELF_DISCLOSURE_RESOURCE_ATTRIBUTES[key.strip()] = value.strip()

# Start the recurring export together with the ASGI application.
SELF_DISCLOSURE_SCHEDULER_ENABLED = _flag("SELF_DISCLOSURE_SCHEDULER_ENABLED", "1")

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s - %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
        "erezept": {"level": LOG_LEVEL, "propagate": True},
    },
}
