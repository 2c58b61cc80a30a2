"""
Phish Reporter
The "report this email" workflow: extract, render, build payload, deliver

Every call ends in a ReportOutcome. Errors are logged with context and
turned into a short message for the reporting user; raw exception text is
never part of the outcome.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .delivery import ReportDeliveryChannel, build_payload
from .email_record import EmailRecord, ReportKind
from .extraction import ExtractionOrchestrator
from .identity import IdentityProvider
from .report_errors import ReportError, classify_failure, user_message
from .report_renderer import RenderedReport, ReportRenderer
from ..utils.config import ReportConfig
from ..utils.sanitization import sanitize_for_logging

SUCCESS_MESSAGE = "Report sent successfully!"
ERROR_TITLE = "Error"
ERROR_SUBTITLE = "Unable to send report"


@dataclass(frozen=True)
class ReportOutcome:
    """Terminal result shown to the reporting user"""
    success: bool
    title: str
    subtitle: str
    message: str

    @classmethod
    def sent(cls, kind: ReportKind) -> "ReportOutcome":
        if kind.expects_response:
            return cls(
                success=True,
                title="Investigation Requested",
                subtitle="Your request has been sent. The security team will contact you soon.",
                message=SUCCESS_MESSAGE
            )
        return cls(
            success=True,
            title="Phishing Reported",
            subtitle="Thank you for reporting. The security team has been notified.",
            message=SUCCESS_MESSAGE
        )

    @classmethod
    def failed(cls, message: str) -> "ReportOutcome":
        return cls(success=False, title=ERROR_TITLE, subtitle=ERROR_SUBTITLE, message=message)


class PhishReporter:
    """Forwards a reported email to the security team"""

    def __init__(
        self,
        config: ReportConfig,
        extractor: ExtractionOrchestrator,
        renderer: ReportRenderer,
        identity: IdentityProvider,
        channel: ReportDeliveryChannel
    ):
        self.config = config
        self.extractor = extractor
        self.renderer = renderer
        self.identity = identity
        self.channel = channel
        self.logger = logging.getLogger("PhishReporter")

    def extract(self, message_id: Optional[str]) -> EmailRecord:
        """Extract the record for a message (see ExtractionOrchestrator)"""
        return self.extractor.extract(message_id)

    def render(self, record: EmailRecord, kind: ReportKind, reporter: str) -> RenderedReport:
        """Render both report bodies (see ReportRenderer)"""
        return self.renderer.render(record, kind, reporter)

    def report(self, message_id: Optional[str], kind: ReportKind) -> ReportOutcome:
        """
        Report a message as phishing or request an investigation

        Args:
            message_id: Identifier of the reported message
            kind: Report kind

        Returns:
            ReportOutcome describing success or a user-safe failure
        """
        try:
            record = self.extract(message_id)
            reporter = self.identity.current()
            rendered = self.render(record, kind, reporter)
            payload = build_payload(record, kind, rendered, reporter, self.config)
            self.channel.deliver(payload)
        except ReportError as e:
            self.logger.error(
                f"Error processing {kind.value} report: {sanitize_for_logging(str(e))}",
                extra={"extra_fields": {"failure_kind": classify_failure(e).value}}
            )
            return ReportOutcome.failed(user_message(e))
        except Exception as e:
            self.logger.error(f"Unexpected error processing {kind.value} report: {e}", exc_info=True)
            return ReportOutcome.failed(user_message(e))

        self.logger.info(
            f"{kind.title.title()} sent: subject='{sanitize_for_logging(record.subject, 80)}', "
            f"tier={record.extraction_tier}, attachments={len(record.attachments)}"
        )
        return ReportOutcome.sent(kind)
