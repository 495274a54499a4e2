# backend/chatbrain/settings.py
import os
from pathlib import Path


def _env(name, default=None):
    return os.getenv(name, default)


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = _env("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h.strip() for h in _env("DJANGO_ALLOWED_HOSTS", "*").split(",") if h.strip()]

INSTALLED_APPS = [
    # must precede staticfiles, both ship a runserver command
    "chatbrain",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "users",
    "folders",
    "conversations",
    "documents",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "chatbrain.middleware.disable_csrf.DisableCSRFMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "chatbrain.urls"
WSGI_APPLICATION = "chatbrain.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# Postgres (e.g. the Supabase database) when configured, SQLite otherwise
if _env("POSTGRES_HOST"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "HOST": _env("POSTGRES_HOST"),
            "PORT": _env("POSTGRES_PORT", "5432"),
            "NAME": _env("POSTGRES_DB", "postgres"),
            "USER": _env("POSTGRES_USER", "postgres"),
            "PASSWORD": _env("POSTGRES_PASSWORD", ""),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": _env("SQLITE_PATH", str(BASE_DIR / "chatbrain.db")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

APPEND_SLASH = False

STATIC_URL = "static/"
MEDIA_ROOT = _env("MEDIA_ROOT", str(BASE_DIR / "media"))
MEDIA_URL = "/uploads/"

# 50MB upload cap
UPLOAD_MAX_BYTES = 50 * 1024 * 1024
DATA_UPLOAD_MAX_MEMORY_SIZE = UPLOAD_MAX_BYTES
FILE_UPLOAD_MAX_MEMORY_SIZE = 5 * 1024 * 1024

# fallback JSON store used when the database cannot be written
DATA_DIR = Path(_env("CHATBRAIN_DATA_DIR", str(BASE_DIR / "data")))

REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
}

CORS_ALLOWED_ORIGINS = [
    o.strip()
    for o in _env(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://localhost:5174,http://localhost:5175",
    ).split(",")
    if o.strip()
]
CORS_ALLOWED_ORIGIN_REGEXES = [r"^https://.*\.netlify\.app$"]
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = [
    "content-type",
    "authorization",
    "x-requested-with",
    "ngrok-skip-browser-warning",
]

# --- Celery ---
CELERY_BROKER_URL = _env("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = _env("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", False)

# --- Azure OpenAI ---
AZURE_OPENAI_ENDPOINT = _env("AZURE_OPENAI_ENDPOINT", "")
AZURE_OPENAI_API_KEY = _env("AZURE_OPENAI_API_KEY", "")
AZURE_OPENAI_API_VERSION = _env("AZURE_OPENAI_API_VERSION", "2024-12-01-preview")
AZURE_OPENAI_EMBEDDING_DEPLOYMENT = _env("AZURE_OPENAI_EMBEDDING_DEPLOYMENT", "text-embedding-3-small")

# one dimensionality for both ingestion and query
EMBED_DIM = int(_env("EMBED_DIM", 512))
EMBED_MAX_CHARS = 8000

CHAT_MODELS = [
    {
        "id": "o3-mini",
        "name": "O3 Mini",
        "deployment": "o3-mini",
        "description": "Fast and efficient model for general tasks",
        "max_tokens": 4000,
    },
    {
        "id": "gpt-oss-120b",
        "name": "GPT OSS 120B",
        "deployment": "gpt-oss-120b",
        "description": "Large-scale open source model with 120B parameters",
        "max_tokens": 8000,
    },
    {
        "id": "o4-mini",
        "name": "O4 Mini",
        "deployment": "o4-mini",
        "description": "Advanced reasoning model with improved capabilities",
        "max_tokens": 8000,
    },
]
DEFAULT_CHAT_MODEL = _env("DEFAULT_CHAT_MODEL", "o3-mini")

# overrides the built-in assistant prompt when set
CHAT_SYSTEM_PROMPT = _env("CHAT_SYSTEM_PROMPT", "")
CHAT_VISUALIZATIONS = _env_bool("CHAT_VISUALIZATIONS", False)

# --- Vector index ---
VECTOR_BACKEND = _env("VECTOR_BACKEND", "pinecone")
PINECONE_API_KEY = _env("PINECONE_API_KEY", "")
PINECONE_INDEX_HOST = _env("PINECONE_INDEX_HOST", "")
PINECONE_NAMESPACE = _env("PINECONE_NAMESPACE", "")
QDRANT_URL = _env("QDRANT_URL", "http://localhost:6333")
QDRANT_API_KEY = _env("QDRANT_API_KEY")
QDRANT_COLLECTION_NAME = _env("QDRANT_COLLECTION_NAME", "documents")

KNOWLEDGE_CATEGORIES = [
    "Candidate CVs",
    "CASA Training",
    "Entertainment",
    "Growth",
    "Health, Safety and Well-being",
    "Innovation",
    "Job Descriptions",
    "Knowledge Library",
    "Lessons Learned",
    "Momentum Friday Meeting Videos",
    "Movar CVs",
    "Movar Manuals and Handbooks",
    "Movar Templates",
    "Organisation Chart",
    "Proposals and Bids",
    "Software",
    "Training",
    "Work Experience",
]

LOG_LEVEL = _env("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "default"},
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}
