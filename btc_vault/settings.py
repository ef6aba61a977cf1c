"""Django settings for the BTC vault staking service.


The service records tBTC / wBTC stakes, reconciles them against two chain
explorers (mempool.space for the UTXO chain, Etherscan for the EVM chain) and
computes the payout owed when an admin claims a confirmed stake.

Every knob below is read from the environment with a dev-friendly default.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_list(name, default=""):
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]

#######################
# Wallet addresses allowed to run privileged operations (reconcile, claim,
# price refresh). Compared lower-cased.
ADMIN_ADDRESSES = [a.lower() for a in env_list("ADMIN_ADDRESSES", "0x39d2770abcc456f6c6be820705ed966592e0ad96")]

# Identity used by `manage.py reconcile_stakes` when run from a scheduler.
RECONCILE_OPERATOR_ADDRESS = os.getenv("RECONCILE_OPERATOR_ADDRESS", ADMIN_ADDRESSES[0] if ADMIN_ADDRESSES else "")

# Chain explorers
MEMPOOL_API_URL = os.getenv("MEMPOOL_API_URL", "https://mempool.space/testnet4/api")
ETHERSCAN_API_URL = os.getenv("ETHERSCAN_API_URL", "https://api-sepolia.etherscan.io/api")
ETHERSCAN_API_KEY = os.getenv("ETHERSCAN_API_KEY", "")
EXPLORER_TIMEOUT_SECONDS = float(os.getenv("EXPLORER_TIMEOUT_SECONDS", "10"))

# Price feed
COINGECKO_API_URL = os.getenv("COINGECKO_API_URL", "https://api.coingecko.com/api/v3/simple/price")
PRICE_TIMEOUT_SECONDS = float(os.getenv("PRICE_TIMEOUT_SECONDS", "10"))

# Probe fan-out per reconciliation pass
RECONCILE_MAX_WORKERS = int(os.getenv("RECONCILE_MAX_WORKERS", "8"))

# Vault deposit addresses shown to stakers
BTC_VAULT_ADDRESS = os.getenv("BTC_VAULT_ADDRESS", "tb1qemtt7nescd7alxcvv9694n2psxq9aetn9tyx6m")
EVM_VAULT_ADDRESS = os.getenv("EVM_VAULT_ADDRESS", "0x2ae8F3F41c991f0923F451744eafF186952a702b")
USDC_TOKEN_ADDRESS = os.getenv("USDC_TOKEN_ADDRESS", "0xC26B8569f3081Dbb8087892CEFb9706fE423d207")

# Lock periods offered by the UI, in days (5 minutes, 30, 90, 365)
LOCK_DURATIONS_DAYS = [float(v) for v in env_list("LOCK_DURATIONS_DAYS", f"{5 / (24 * 60)},30,90,365")]
# Longest lock accepted when a stake is created (keeps lock_end a valid datetime)
MAX_LOCK_DURATION_DAYS = float(os.getenv("MAX_LOCK_DURATION_DAYS", "36500"))
#######################


INSTALLED_APPS = [
	"django.contrib.admin",
	"django.contrib.auth",
	"django.contrib.contenttypes",
	"django.contrib.sessions",
	"django.contrib.messages",
	"django.contrib.staticfiles",
	# local apps
	"core",
	"api",
	"settlement_stub",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.contrib.sessions.middleware.SessionMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
	"django.contrib.auth.middleware.AuthenticationMiddleware",
	"django.contrib.messages.middleware.MessageMiddleware",
]


ROOT_URLCONF = "btc_vault.urls"
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


WSGI_APPLICATION = "btc_vault.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "btc_vault"),
            "USER": os.getenv("POSTGRES_USER", "btc_vault"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "btc_vault"),
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
		"verbose": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "verbose"},
	},
	"root": {"handlers": ["console"], "level": "WARNING"},
	"loggers": {
		"core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
		"settlement_stub": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
	},
}


AUTH_PASSWORD_VALIDATORS = []


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
