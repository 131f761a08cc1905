"""Environment-driven settings shared by every bounded context.

Settings are read once from the process environment and cached.
Tests that change the environment call ``reset_settings()`` afterwards.
"""

import os
from dataclasses import dataclass


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: str = "development"
    currency: str = "INR"
    public_base_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 10.0
    log_level: str = ""
    log_dir: str = "logs"

    shipping_flat_rate: float = 0.0
    tax_rate: float = 0.0

    payment_gateway: str = "fake"
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    razorpay_api_base: str = "https://api.razorpay.com/v1"

    erp_adapter: str = "fake"
    erp_url: str = ""
    erp_db: str = ""
    erp_username: str = ""
    erp_password: str = ""
    erp_sync_interval_seconds: float = 0.0
    erp_push_batch_size: int = 20

    shiprocket_api_base: str = "https://apiv2.shiprocket.in/v1"
    shiprocket_email: str = ""
    shiprocket_password: str = ""
    shiprocket_pickup_location: str = "Primary"
    shiprocket_channel_id: str = ""
    delhivery_api_base: str = "https://track.delhivery.com"
    delhivery_token: str = ""
    delhivery_pickup_location: str = "Primary"

    email_adapter: str = "fake"
    email_from: str = "orders@localhost"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: str = ""
    smtp_password: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            app_env=(_env("PROTEAN_ENV") or _env("APP_ENV", "development")).lower(),
            currency=_env("CURRENCY", cls.currency),
            public_base_url=_env("PUBLIC_BASE_URL", cls.public_base_url).rstrip("/"),
            http_timeout_seconds=float(_env("HTTP_TIMEOUT_SECONDS", "10")),
            log_level=_env("LOG_LEVEL").upper(),
            log_dir=_env("LOG_DIR", cls.log_dir),
            shipping_flat_rate=float(_env("SHIPPING_FLAT_RATE", "0")),
            tax_rate=float(_env("TAX_RATE", "0")),
            payment_gateway=_env("PAYMENT_GATEWAY", "fake").lower(),
            razorpay_key_id=_env("RAZORPAY_KEY_ID"),
            razorpay_key_secret=_env("RAZORPAY_KEY_SECRET"),
            razorpay_webhook_secret=_env("RAZORPAY_WEBHOOK_SECRET"),
            razorpay_api_base=_env("RAZORPAY_API_BASE", cls.razorpay_api_base).rstrip("/"),
            erp_adapter=_env("ERP_ADAPTER", "fake").lower(),
            erp_url=_env("ERP_URL").rstrip("/"),
            erp_db=_env("ERP_DB"),
            erp_username=_env("ERP_USERNAME"),
            erp_password=_env("ERP_PASSWORD"),
            erp_sync_interval_seconds=float(_env("ERP_SYNC_INTERVAL_SECONDS", "0")),
            erp_push_batch_size=int(_env("ERP_PUSH_BATCH_SIZE", "20")),
            shiprocket_api_base=_env("SHIPROCKET_API_BASE", cls.shiprocket_api_base).rstrip("/"),
            shiprocket_email=_env("SHIPROCKET_EMAIL"),
            shiprocket_password=_env("SHIPROCKET_PASSWORD"),
            shiprocket_pickup_location=_env("SHIPROCKET_PICKUP_LOCATION", "Primary"),
            shiprocket_channel_id=_env("SHIPROCKET_CHANNEL_ID"),
            delhivery_api_base=_env("DELHIVERY_API_BASE", cls.delhivery_api_base).rstrip("/"),
            delhivery_token=_env("DELHIVERY_TOKEN"),
            delhivery_pickup_location=_env("DELHIVERY_PICKUP_LOCATION", "Primary"),
            email_adapter=_env("EMAIL_ADAPTER", "fake").lower(),
            email_from=_env("EMAIL_FROM", cls.email_from),
            smtp_host=_env("SMTP_HOST", "localhost"),
            smtp_port=int(_env("SMTP_PORT", "25")),
            smtp_username=_env("SMTP_USERNAME"),
            smtp_password=_env("SMTP_PASSWORD"),
        )

    @property
    def is_production(self) -> bool:
        return self.app_env in ("production", "staging")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
