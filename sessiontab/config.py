import os


def _origins(value):
    if value.strip() == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class Config:
    # Currency symbol used in the human-readable settlement lines
    CURRENCY_SYMBOL = os.environ.get("SESSIONTAB_CURRENCY", "₱")
    # Comma separated list, or "*" to allow the frontend from anywhere
    CORS_ORIGINS = _origins(os.environ.get("SESSIONTAB_CORS_ORIGINS", "*"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
