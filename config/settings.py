from pathlib import Path
import os
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
APPEND_SLASH = True

ALLOWED_HOSTS = ["*", "localhost", "127.0.0.1"]


INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",

    "rest_framework",
    "drf_spectacular",
    "corsheaders",

    "commons",   # health/time endpoints + middleware de log
    "fiscal",    # motor de regras NF-e / CT-e / MDF-e
]


MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "commons.middleware.RequestLogMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

CORS_ALLOW_ALL_ORIGINS = True

# O motor é stateless; o banco só existe para o contenttypes/auth do Django.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

REST_FRAMEWORK = {
    # autenticação fica na camada que consome a API
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "COERCE_DECIMAL_TO_STRING": True,
}

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"

SPECTACULAR_SETTINGS = {
    "TITLE": "Emissor Fiscal API",
    "DESCRIPTION": "Regras fiscais de NF-e, CT-e e MDF-e (validação, tributos, eventos).",
    "VERSION": "1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

sentry_sdk.init(
    dsn=os.getenv("SENTRY_DSN", ""),
    integrations=[DjangoIntegration()],
    traces_sample_rate=0.1,
    send_default_pii=False,
)

# =============================
# 🧾 Emitente / tabelas fiscais
# =============================

# Perfil do emitente. Sem CNPJ configurado fica None e a montagem
# do payload falha com EmitenteNaoConfiguradoError.
FISCAL_EMITENTE = None
if os.getenv("FISCAL_EMITENTE_CNPJ"):
    FISCAL_EMITENTE = {
        "nome": os.getenv("FISCAL_EMITENTE_NOME", ""),
        "cnpj": os.getenv("FISCAL_EMITENTE_CNPJ", ""),
        "inscricao_estadual": os.getenv("FISCAL_EMITENTE_IE", ""),
        "inscricao_municipal": os.getenv("FISCAL_EMITENTE_IM") or None,
        "regime_tributario": int(os.getenv("FISCAL_EMITENTE_REGIME", "3")),
        "endereco": {
            "cep": os.getenv("FISCAL_EMITENTE_CEP", ""),
            "logradouro": os.getenv("FISCAL_EMITENTE_LOGRADOURO", ""),
            "numero": os.getenv("FISCAL_EMITENTE_NUMERO", ""),
            "bairro": os.getenv("FISCAL_EMITENTE_BAIRRO", ""),
            "municipio": os.getenv("FISCAL_EMITENTE_MUNICIPIO", ""),
            "codigo_municipio": os.getenv("FISCAL_EMITENTE_CODIGO_MUNICIPIO", ""),
            "uf": os.getenv("FISCAL_EMITENTE_UF", ""),
        },
    }

# Municípios adicionais: {"Cidade-UF": "codigo IBGE"}
FISCAL_MUNICIPIOS_EXTRA = {}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "emissor-default",
    }
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "class": "pythonjsonlogger.json.JsonFormatter",
        },
        "simple": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "level": "INFO",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
        "emissor.fiscal": {
            "handlers": ["console"],
            "level": "DEBUG",
            # propaga para o root: caplog dos testes escuta lá
            "propagate": True,
        },
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

if not DEBUG:
    SECURE_HSTS_SECONDS = 63072000
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
