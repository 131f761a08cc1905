"""Email channel registry.

Provides singleton access to the email adapter. Uses the fake adapter by
default; EMAIL_ADAPTER=smtp switches to real delivery.
"""

from notifications.channel.email_port import EmailPort
from shared.config import get_settings

_email_adapter: EmailPort | None = None


def get_email_adapter() -> EmailPort:
    """Return the configured email adapter (singleton)."""
    global _email_adapter
    if _email_adapter is None:
        settings = get_settings()
        if settings.email_adapter == "fake":
            from notifications.channel.fake_email import FakeEmailAdapter

            _email_adapter = FakeEmailAdapter()
        elif settings.email_adapter == "smtp":
            from notifications.channel.smtp_email import SmtpEmailAdapter

            _email_adapter = SmtpEmailAdapter(
                host=settings.smtp_host,
                port=settings.smtp_port,
                sender=settings.email_from,
                username=settings.smtp_username,
                password=settings.smtp_password,
                timeout=settings.http_timeout_seconds,
            )
        else:
            raise ValueError(f"Unknown email adapter: {settings.email_adapter}")
    return _email_adapter


def set_email_adapter(adapter: EmailPort) -> None:
    global _email_adapter
    _email_adapter = adapter


def reset_email_adapter() -> None:
    """Reset the email singleton (useful for testing)."""
    global _email_adapter
    _email_adapter = None
