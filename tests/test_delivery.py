"""
Tests for report payload building and delivery channels
"""

import base64
import smtplib
import unittest
from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import requests

from src.modules.delivery import (
    EML_MIME_TYPE,
    SmtpDeliveryChannel,
    WebhookDeliveryChannel,
    build_payload,
    create_delivery_channel,
    report_subject,
)
from src.modules.email_record import EmailRecord, ReportKind
from src.modules.report_errors import DeliveryError, FailureKind
from src.modules.report_renderer import RenderedReport
from src.utils.config import DeliveryConfig, ReportConfig

RAW = "Subject: Re: $$$ Urgent!!\r\nFrom: bad@evil.com\r\n\r\nbody café\r\n"


def make_record():
    return EmailRecord(
        raw_content=RAW,
        subject="Re: $$$ Urgent!!",
        sender="bad@evil.com",
        recipient="victim@example.com",
        date=datetime(2024, 3, 5, 10, 15, 30, tzinfo=timezone.utc)
    )


def make_report_config():
    return ReportConfig(
        security_email="soc@corp.example",
        phishing_prefix="[PHISHING]",
        investigation_prefix="[INVESTIGATION]",
        reporter_email=None
    )


def make_delivery_config(**overrides):
    values = dict(
        method="smtp",
        smtp_server="smtp.corp.example",
        smtp_port=587,
        smtp_username="reporter@corp.example",
        smtp_password="secret",
        smtp_use_tls=True,
        webhook_url="https://hooks.corp.example/phish"
    )
    values.update(overrides)
    return DeliveryConfig(**values)


RENDERED = RenderedReport(plain_body="plain report", html_body="<p>html report</p>")


class TestBuildPayload(unittest.TestCase):

    def test_phishing_payload(self):
        payload = build_payload(make_record(), ReportKind.PHISHING, RENDERED,
                                "analyst@corp.example", make_report_config())

        self.assertEqual(payload.recipient, "soc@corp.example")
        self.assertEqual(payload.subject, "[PHISHING] Re: $$$ Urgent!!")
        self.assertEqual(payload.plain_body, "plain report")
        self.assertEqual(payload.html_body, "<p>html report</p>")
        self.assertEqual(payload.reporter, "analyst@corp.example")
        self.assertEqual(len(payload.attachments), 1)

        artifact = payload.attachments[0]
        self.assertEqual(artifact.filename, "phishing_report_2024-03-05_10-15-30_Re_Urgent.eml")
        self.assertEqual(artifact.mime_type, EML_MIME_TYPE)
        self.assertEqual(artifact.data, RAW.encode("utf-8"))

    def test_investigation_subject(self):
        subject = report_subject(make_record(), ReportKind.INVESTIGATION, make_report_config())
        self.assertEqual(subject, "[INVESTIGATION] Re: $$$ Urgent!!")

    def test_to_dict_encodes_attachments(self):
        payload = build_payload(make_record(), ReportKind.PHISHING, RENDERED,
                                "analyst@corp.example", make_report_config())
        data = payload.to_dict()

        self.assertEqual(data["subject"], "[PHISHING] Re: $$$ Urgent!!")
        attachment = data["attachments"][0]
        self.assertEqual(attachment["mime_type"], "message/rfc822")
        self.assertEqual(base64.b64decode(attachment["data"]), RAW.encode("utf-8"))

    def test_artifact_uses_retrieved_bytes(self):
        raw = b"Subject: Re: $$$ Urgent!!\r\nFrom: bad@evil.com\r\n\r\nbody caf\xe9\r\n"
        record = replace(make_record(), raw_content=raw.decode("utf-8", errors="replace"), raw_bytes=raw)

        payload = build_payload(record, ReportKind.PHISHING, RENDERED,
                                "analyst@corp.example", make_report_config())

        self.assertEqual(payload.attachments[0].data, raw)


class TestSmtpDeliveryChannel(unittest.TestCase):

    def setUp(self):
        self.payload = build_payload(make_record(), ReportKind.PHISHING, RENDERED,
                                     "analyst@corp.example", make_report_config())

    def test_message_structure(self):
        channel = SmtpDeliveryChannel(make_delivery_config())
        message = channel.build_message(self.payload)

        self.assertEqual(message.get_content_type(), "multipart/mixed")
        self.assertEqual(message["To"], "soc@corp.example")
        self.assertEqual(message["From"], "reporter@corp.example")
        self.assertEqual(message["Reply-To"], "analyst@corp.example")
        self.assertEqual(message["Subject"], "[PHISHING] Re: $$$ Urgent!!")

        body, artifact = message.get_payload()
        self.assertEqual(body.get_content_type(), "multipart/alternative")
        plain, html = body.get_payload()
        self.assertEqual(plain.get_content_type(), "text/plain")
        self.assertEqual(plain.get_payload(decode=True).decode("utf-8"), "plain report")
        self.assertEqual(html.get_content_type(), "text/html")

        self.assertEqual(artifact.get_content_type(), "message/rfc822")
        self.assertEqual(artifact.get_filename(), "phishing_report_2024-03-05_10-15-30_Re_Urgent.eml")
        self.assertEqual(artifact.get_payload(decode=True), RAW.encode("utf-8"))

    def test_from_falls_back_to_reporter(self):
        channel = SmtpDeliveryChannel(make_delivery_config(smtp_username=None))
        message = channel.build_message(self.payload)
        self.assertEqual(message["From"], "analyst@corp.example")

    @patch('src.modules.delivery.create_secure_ssl_context')
    @patch('src.modules.delivery.smtplib.SMTP')
    def test_deliver_sends_message(self, mock_smtp, mock_context):
        smtp = mock_smtp.return_value.__enter__.return_value

        SmtpDeliveryChannel(make_delivery_config()).deliver(self.payload)

        mock_smtp.assert_called_once_with("smtp.corp.example", 587, timeout=30)
        smtp.starttls.assert_called_once_with(context=mock_context.return_value)
        smtp.login.assert_called_once_with("reporter@corp.example", "secret")
        smtp.send_message.assert_called_once()

    @patch('src.modules.delivery.smtplib.SMTP')
    def test_deliver_without_tls_or_credentials(self, mock_smtp):
        smtp = mock_smtp.return_value.__enter__.return_value
        config = make_delivery_config(smtp_use_tls=False, smtp_username=None, smtp_password=None)

        SmtpDeliveryChannel(config).deliver(self.payload)

        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    @patch('src.modules.delivery.create_secure_ssl_context')
    @patch('src.modules.delivery.smtplib.SMTP')
    def test_authentication_failure_is_permission_denied(self, mock_smtp, mock_context):
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        with self.assertRaises(DeliveryError) as cm:
            SmtpDeliveryChannel(make_delivery_config()).deliver(self.payload)

        self.assertEqual(cm.exception.kind, FailureKind.PERMISSION_DENIED)

    @patch('src.modules.delivery.smtplib.SMTP')
    def test_connection_failure(self, mock_smtp):
        mock_smtp.side_effect = ConnectionRefusedError("refused")

        with self.assertRaises(DeliveryError) as cm:
            SmtpDeliveryChannel(make_delivery_config()).deliver(self.payload)

        self.assertEqual(cm.exception.kind, FailureKind.UNKNOWN)


class TestWebhookDeliveryChannel(unittest.TestCase):

    def setUp(self):
        self.payload = build_payload(make_record(), ReportKind.INVESTIGATION, RENDERED,
                                     "analyst@corp.example", make_report_config())
        self.channel = WebhookDeliveryChannel(make_delivery_config(method="webhook"))

    @patch('src.modules.delivery.requests.post')
    def test_posts_payload_as_json(self, mock_post):
        mock_post.return_value.raise_for_status.return_value = None

        self.channel.deliver(self.payload)

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://hooks.corp.example/phish")
        self.assertEqual(kwargs["json"]["subject"], "[INVESTIGATION] Re: $$$ Urgent!!")
        self.assertEqual(kwargs["timeout"], 10)

    @patch('src.modules.delivery.requests.post')
    def test_forbidden_is_permission_denied(self, mock_post):
        response = MagicMock(spec=requests.Response)
        response.status_code = 403
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError(
            "403 Forbidden", response=response
        )

        with self.assertRaises(DeliveryError) as cm:
            self.channel.deliver(self.payload)

        self.assertEqual(cm.exception.kind, FailureKind.PERMISSION_DENIED)

    @patch('src.modules.delivery.requests.post')
    def test_timeout(self, mock_post):
        mock_post.side_effect = requests.Timeout("timed out")

        with self.assertRaises(DeliveryError) as cm:
            self.channel.deliver(self.payload)

        self.assertEqual(cm.exception.kind, FailureKind.UNKNOWN)


class TestCreateDeliveryChannel(unittest.TestCase):

    def test_channel_selection(self):
        self.assertIsInstance(create_delivery_channel(make_delivery_config()), SmtpDeliveryChannel)
        self.assertIsInstance(
            create_delivery_channel(make_delivery_config(method="webhook")),
            WebhookDeliveryChannel
        )


if __name__ == '__main__':
    unittest.main()
