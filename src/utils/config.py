"""
Configuration Management Module
Handles loading and validation of environment variables and settings
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

from .security_validators import is_safe_webhook_url

DELIVERY_METHODS = ("smtp", "webhook")
LOG_FORMATS = ("text", "json")


@dataclass
class ReportConfig:
    """Where reports go and how they are titled"""
    security_email: str
    phishing_prefix: str
    investigation_prefix: str
    reporter_email: Optional[str]


@dataclass
class MailboxConfig:
    """IMAP mailbox the reported messages are read from"""
    email: str
    imap_server: str
    imap_port: int
    app_password: str = field(repr=False)
    folder: str
    use_ssl: bool
    verify_ssl: bool


@dataclass
class DeliveryConfig:
    """Configuration for the report delivery channel"""
    method: str
    smtp_server: Optional[str]
    smtp_port: int
    smtp_username: Optional[str]
    smtp_password: Optional[str] = field(repr=False)
    smtp_use_tls: bool
    webhook_url: Optional[str] = field(repr=False)


@dataclass
class SystemConfig:
    """Configuration for system settings"""
    log_level: str
    log_file: str
    log_format: str


class Config:
    """Main configuration class"""

    def __init__(self, env_file: str = ".env"):
        """
        Initialize configuration from environment file

        Args:
            env_file: Path to environment file (default: .env)
        """
        load_dotenv(env_file)

        self.report = self._load_report_config()
        self.mailbox = self._load_mailbox_config()
        self.delivery = self._load_delivery_config()
        self.system = self._load_system_config()

    def _load_report_config(self) -> ReportConfig:
        """Load report recipient and subject prefixes"""
        return ReportConfig(
            security_email=os.getenv("SECURITY_EMAIL", "security@example.com").strip(),
            phishing_prefix=os.getenv("PHISHING_PREFIX", "[PHISHING]"),
            investigation_prefix=os.getenv("INVESTIGATION_PREFIX", "[INVESTIGATION]"),
            reporter_email=os.getenv("REPORTER_EMAIL") or None
        )

    def _load_mailbox_config(self) -> MailboxConfig:
        """Load IMAP mailbox configuration"""
        return MailboxConfig(
            email=os.getenv("IMAP_EMAIL", ""),
            imap_server=os.getenv("IMAP_SERVER", "imap.gmail.com"),
            imap_port=int(os.getenv("IMAP_PORT", "993")),
            app_password=os.getenv("IMAP_APP_PASSWORD", ""),
            folder=os.getenv("IMAP_FOLDER", "INBOX").strip() or "INBOX",
            use_ssl=self._get_bool("IMAP_USE_SSL", True),
            verify_ssl=self._get_bool("IMAP_VERIFY_SSL", True)
        )

    def _load_delivery_config(self) -> DeliveryConfig:
        """Load delivery channel configuration"""
        return DeliveryConfig(
            method=os.getenv("DELIVERY_METHOD", "smtp").strip().lower(),
            smtp_server=os.getenv("SMTP_SERVER"),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            smtp_username=os.getenv("SMTP_USERNAME"),
            smtp_password=os.getenv("SMTP_PASSWORD"),
            smtp_use_tls=self._get_bool("SMTP_USE_TLS", True),
            webhook_url=os.getenv("WEBHOOK_URL")
        )

    def _load_system_config(self) -> SystemConfig:
        """Load system configuration"""
        return SystemConfig(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/phish_reporter.log"),
            log_format=os.getenv("LOG_FORMAT", "text").strip().lower()
        )

    @staticmethod
    def _get_bool(key: str, default: bool = False) -> bool:
        """Convert environment variable to boolean"""
        value = os.getenv(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    def validate(self) -> bool:
        """
        Validate configuration

        Returns:
            True if configuration is valid

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.report.security_email or "@" not in self.report.security_email:
            raise ValueError("Invalid SECURITY_EMAIL in configuration")

        if self.delivery.method not in DELIVERY_METHODS:
            raise ValueError(
                f"Unknown DELIVERY_METHOD '{self.delivery.method}' "
                f"(expected one of: {', '.join(DELIVERY_METHODS)})"
            )

        if self.delivery.method == "smtp" and not self.delivery.smtp_server:
            raise ValueError("SMTP delivery selected but no SMTP_SERVER provided")

        if self.delivery.method == "webhook":
            if not self.delivery.webhook_url:
                raise ValueError("Webhook delivery selected but no WEBHOOK_URL provided")
            is_safe, reason = is_safe_webhook_url(self.delivery.webhook_url)
            if not is_safe:
                raise ValueError(f"Unsafe WEBHOOK_URL: {reason}")

        if self.system.log_format not in LOG_FORMATS:
            raise ValueError(f"Unknown LOG_FORMAT '{self.system.log_format}'")

        return True
