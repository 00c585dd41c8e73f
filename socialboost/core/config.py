import os
from dataclasses import dataclass
from typing import Optional

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./socialboost.db")

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

# ✅ Runtime
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ✅ Stripe
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
CHECKOUT_LOCK_TTL_SECONDS = int(os.getenv("CHECKOUT_LOCK_TTL_SECONDS", "60"))

# ✅ Schema management
RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "0") == "1"

# ✅ Mail
SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "SocialBoost <noreply@socialboost.app>")


@dataclass(frozen=True)
class BillingSettings:
    """Billing configuration handed to services instead of module globals."""
    stripe_secret_key: Optional[str]
    stripe_webhook_secret: Optional[str]
    frontend_url: str = "http://localhost:5173"
    currency: str = "usd"
    checkout_lock_ttl_seconds: int = 60

    @property
    def success_url(self) -> str:
        return f"{self.frontend_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self.frontend_url}/campaign-preferences"


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int
    username: Optional[str]
    password: Optional[str]
    use_tls: bool
    sender: str


def load_billing_settings() -> BillingSettings:
    return BillingSettings(
        stripe_secret_key=STRIPE_SECRET_KEY,
        stripe_webhook_secret=STRIPE_WEBHOOK_SECRET,
        frontend_url=FRONTEND_URL.rstrip("/"),
        checkout_lock_ttl_seconds=CHECKOUT_LOCK_TTL_SECONDS,
    )


def load_smtp_settings() -> SmtpSettings:
    return SmtpSettings(
        host=SMTP_HOST,
        port=SMTP_PORT,
        username=SMTP_USERNAME,
        password=SMTP_PASSWORD,
        use_tls=SMTP_USE_TLS,
        sender=MAIL_DEFAULT_SENDER,
    )


def is_production() -> bool:
    return ENVIRONMENT.lower() == "production"
