import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./test.db")
    MIGRATION_DB_URI = data.get("MIGRATION_DB_URI", "sqlite:///./test.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")
    CREATE_TABLES_ON_STARTUP = bool(data.get("CREATE_TABLES_ON_STARTUP", True))

    # Subscription lifecycle
    SUBSCRIPTION_MAX_PAYMENT_ATTEMPTS = data.get("SUBSCRIPTION_MAX_PAYMENT_ATTEMPTS", 3)
    SUBSCRIPTION_PERIOD_MONTHS = data.get("SUBSCRIPTION_PERIOD_MONTHS", 1)
    SUBSCRIPTION_RENEWAL_GRACE_DAYS = data.get("SUBSCRIPTION_RENEWAL_GRACE_DAYS", 3)
    SUBSCRIPTION_CURRENCY = data.get("SUBSCRIPTION_CURRENCY", "ARS")
    PLAN_PRICES = data.get("PLAN_PRICES", {"retailer": "9999", "wholesaler": "19999"})

    # Expiry sweep / renewal worker
    SUBSCRIPTION_SWEEP_ENABLED = bool(data.get("SUBSCRIPTION_SWEEP_ENABLED", True))
    SUBSCRIPTION_SWEEP_INTERVAL_SECONDS = data.get("SUBSCRIPTION_SWEEP_INTERVAL_SECONDS", 3600)  # Hourly

    # Payment gateway
    PAYMENT_GATEWAY = data.get("PAYMENT_GATEWAY", "sandbox")  # "mercadopago" or "sandbox"
    PAYMENT_GATEWAY_TIMEOUT_SECONDS = data.get("PAYMENT_GATEWAY_TIMEOUT_SECONDS", 10.0)
    PAYMENT_GATEWAY_MAX_RETRIES = data.get("PAYMENT_GATEWAY_MAX_RETRIES", 2)
    MERCADOPAGO_API_URL = data.get("MERCADOPAGO_API_URL", "https://api.mercadopago.com")
    MERCADOPAGO_ACCESS_TOKEN = data.get("MERCADOPAGO_ACCESS_TOKEN", "")
    PAYMENT_NOTIFICATION_URL = data.get("PAYMENT_NOTIFICATION_URL", None)
    PAYMENT_BACK_URL = data.get("PAYMENT_BACK_URL", None)
