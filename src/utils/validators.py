from typing import List
from src.utils.config import Config

def check_default_credentials(config: Config) -> List[str]:
    """
    Check if the configuration uses default example values.
    Returns a list of error messages.
    """
    errors = []

    # Default values from .env.example
    DEFAULT_SECURITY_EMAIL = "security@example.com"
    DEFAULT_MAILBOX_EMAILS = [
        "your-email@gmail.com",
        "your-email@example.com"
    ]
    DEFAULT_PASSWORDS = [
        "your-app-password-here",
        "your-smtp-password-here"
    ]
    DEFAULT_WEBHOOK = "https://your-webhook-url.com/reports"

    if config.report.security_email == DEFAULT_SECURITY_EMAIL:
        errors.append(f"Reports would be sent to the example address: {DEFAULT_SECURITY_EMAIL}")

    if config.mailbox.email in DEFAULT_MAILBOX_EMAILS:
        errors.append(f"Mailbox uses default email: {config.mailbox.email}")
    if config.mailbox.app_password in DEFAULT_PASSWORDS:
        errors.append("Mailbox uses default app password")

    if config.delivery.method == "smtp":
        if config.delivery.smtp_password in DEFAULT_PASSWORDS:
            errors.append("SMTP delivery enabled but uses default password")

    if config.delivery.method == "webhook":
        if config.delivery.webhook_url == DEFAULT_WEBHOOK:
            errors.append("Webhook delivery enabled but uses default URL")

    return errors
