"""
Report Delivery Module
Builds the report payload and hands it to a delivery channel

The core only builds ReportPayload. Channels are thin adapters:
- SmtpDeliveryChannel sends a multipart email with the .eml artifact
- WebhookDeliveryChannel posts the payload as JSON

SECURITY STORY: Delivery failures are re-raised as DeliveryError carrying a
classified FailureKind, so the caller can pick a user-facing message without
ever showing transport error text to the reporting user.
"""

import base64
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from typing import Any, Dict, List, Optional

import requests

from .email_record import EmailRecord, ReportKind
from .report_errors import DeliveryError, classify_failure
from .report_renderer import RenderedReport
from ..utils.config import DeliveryConfig, ReportConfig
from ..utils.sanitization import redact_email, sanitize_for_logging
from ..utils.security_validators import create_secure_ssl_context, generate_eml_filename

EML_MIME_TYPE = "message/rfc822"
SMTP_TIMEOUT_SECONDS = 30
WEBHOOK_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class ArtifactAttachment:
    """A file attached to the report"""
    filename: str
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class ReportPayload:
    """Everything a delivery channel needs to send one report"""
    recipient: str
    subject: str
    plain_body: str
    html_body: str
    reporter: str
    attachments: List[ArtifactAttachment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation (attachment bytes base64 encoded)"""
        return {
            "recipient": self.recipient,
            "subject": self.subject,
            "plain_body": self.plain_body,
            "html_body": self.html_body,
            "reporter": self.reporter,
            "attachments": [
                {
                    "filename": attachment.filename,
                    "mime_type": attachment.mime_type,
                    "data": base64.b64encode(attachment.data).decode("ascii"),
                }
                for attachment in self.attachments
            ],
        }


def report_subject(record: EmailRecord, kind: ReportKind, config: ReportConfig) -> str:
    """'<prefix> <cleaned subject>'"""
    prefix = config.investigation_prefix if kind.expects_response else config.phishing_prefix
    return f"{prefix} {record.subject}"


def build_payload(
    record: EmailRecord,
    kind: ReportKind,
    rendered: RenderedReport,
    reporter: str,
    config: ReportConfig
) -> ReportPayload:
    """
    Assemble the report payload

    The artifact is the raw message exactly as retrieved, named with
    generate_eml_filename().

    Args:
        record: Extracted record
        kind: Report kind
        rendered: Bodies from ReportRenderer
        reporter: Acting user's address
        config: Report recipient and subject prefixes

    Returns:
        ReportPayload
    """
    artifact = ArtifactAttachment(
        filename=generate_eml_filename(record.subject, record.date),
        mime_type=EML_MIME_TYPE,
        data=record.artifact_bytes
    )
    return ReportPayload(
        recipient=config.security_email,
        subject=report_subject(record, kind, config),
        plain_body=rendered.plain_body,
        html_body=rendered.html_body,
        reporter=reporter,
        attachments=[artifact]
    )


class ReportDeliveryChannel(ABC):
    """Delivers a ReportPayload"""

    @abstractmethod
    def deliver(self, payload: ReportPayload) -> None:
        """Send the report or raise DeliveryError"""


class SmtpDeliveryChannel(ReportDeliveryChannel):
    """Sends the report as an email with the original message attached"""

    def __init__(self, config: DeliveryConfig, sender: Optional[str] = None):
        """
        Initialize SMTP channel

        Args:
            config: Delivery configuration (server, port, credentials)
            sender: From address (defaults to SMTP_USERNAME, then the reporter)
        """
        self.config = config
        self.sender = sender or config.smtp_username
        self.logger = logging.getLogger("SmtpDeliveryChannel")

    def deliver(self, payload: ReportPayload) -> None:
        message = self.build_message(payload)
        try:
            with smtplib.SMTP(
                self.config.smtp_server,
                self.config.smtp_port,
                timeout=SMTP_TIMEOUT_SECONDS
            ) as smtp:
                if self.config.smtp_use_tls:
                    smtp.starttls(context=create_secure_ssl_context())
                if self.config.smtp_username and self.config.smtp_password:
                    smtp.login(self.config.smtp_username, self.config.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            kind = classify_failure(e)
            self.logger.error(f"SMTP delivery failed ({kind.value}): {sanitize_for_logging(str(e))}")
            raise DeliveryError("SMTP delivery failed", kind, original_exception=e) from e

        self.logger.info(f"Report emailed to {redact_email(payload.recipient)}")

    def build_message(self, payload: ReportPayload) -> MIMEMultipart:
        """
        Build the multipart/mixed report email

        Layout: multipart/alternative (text, html) followed by one part per
        artifact, base64 encoded so the raw message bytes are untouched.
        """
        message = MIMEMultipart("mixed")
        message["Subject"] = payload.subject
        message["From"] = self.sender or payload.reporter
        message["To"] = payload.recipient
        message["Reply-To"] = payload.reporter
        message["Date"] = formatdate(localtime=False)
        message["Message-ID"] = make_msgid()

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(payload.plain_body, "plain", "utf-8"))
        body.attach(MIMEText(payload.html_body, "html", "utf-8"))
        message.attach(body)

        for attachment in payload.attachments:
            maintype, _, subtype = attachment.mime_type.partition("/")
            part = MIMEBase(maintype, subtype or "octet-stream")
            part.set_payload(attachment.data)
            encoders.encode_base64(part)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            message.attach(part)

        return message


class WebhookDeliveryChannel(ReportDeliveryChannel):
    """Posts the report payload as JSON to WEBHOOK_URL"""

    def __init__(self, config: DeliveryConfig):
        self.config = config
        self.logger = logging.getLogger("WebhookDeliveryChannel")

    def deliver(self, payload: ReportPayload) -> None:
        try:
            response = requests.post(
                self.config.webhook_url,
                json=payload.to_dict(),
                headers={'Content-Type': 'application/json'},
                timeout=WEBHOOK_TIMEOUT_SECONDS
            )
            response.raise_for_status()
        except requests.RequestException as e:
            kind = classify_failure(e)
            self.logger.error(f"Webhook delivery failed ({kind.value}): {sanitize_for_logging(str(e))}")
            raise DeliveryError("Webhook delivery failed", kind, original_exception=e) from e

        self.logger.info("Webhook report delivered successfully")


def create_delivery_channel(config: DeliveryConfig) -> ReportDeliveryChannel:
    """Pick the channel named by DELIVERY_METHOD"""
    if config.method == "webhook":
        return WebhookDeliveryChannel(config)
    return SmtpDeliveryChannel(config)
