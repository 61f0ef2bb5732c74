"""Django settings for the ChainEquity ledger service.


This project mirrors a compliance-gated equity token into a local store:
- chain logs (chain_stub by default) → indexer → event store + balance projection
- point-in-time cap tables rebuilt from the event log


Everything is read from the environment; defaults are for local development.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_int(name, default):
    v = os.getenv(name)
    return int(v) if v not in (None, "") else default

#######################
# Token contract being mirrored (the chain stub answers for any address)
CHAIN_CONTRACT_ADDRESS = os.getenv("CHAIN_CONTRACT_ADDRESS", "0x00000000000000000000000000000000000c4a1e").lower()

# Upstream eth_getLogs range limit, in blocks
CHAIN_MAX_LOG_RANGE = env_int("CHAIN_MAX_LOG_RANGE", 1000)

# Indexer: chunk size must not exceed CHAIN_MAX_LOG_RANGE
INDEXER_BLOCKS_PER_QUERY = env_int("INDEXER_BLOCKS_PER_QUERY", 1000)
INDEXER_POLL_INTERVAL = float(os.getenv("INDEXER_POLL_INTERVAL", "5"))
INDEXER_START_BLOCK = env_int("INDEXER_START_BLOCK", 0)
INDEXER_MAX_RETRIES = env_int("INDEXER_MAX_RETRIES", 5)
INDEXER_BACKOFF_SECONDS = float(os.getenv("INDEXER_BACKOFF_SECONDS", "1.0"))
#######################


INSTALLED_APPS = [
	"django.contrib.contenttypes",
	"django.contrib.auth",
	# local apps
	"core",
	"api",
	"chain_stub",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.middleware.common.CommonMiddleware",
]


ROOT_URLCONF = "chainequity.urls"
WSGI_APPLICATION = "chainequity.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "chainequity"),
            "USER": os.getenv("POSTGRES_USER", "chainequity"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "chainequity"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"plain": {"format": "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "plain"},
	},
	"root": {"handlers": ["console"], "level": "WARNING"},
	"loggers": {
		"core": {"level": LOG_LEVEL},
		"api": {"level": LOG_LEVEL},
		"chain_stub": {"level": LOG_LEVEL},
	},
}


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
