"""
Report Renderer
Builds the plain-text and HTML bodies of the report sent to the security team

SECURITY STORY: Every value in the HTML body that came from the reported
email (subject, addresses, ids, user agent, attachment names) or from the
session (reporter identity, timestamps) goes through escape_html() before
interpolation. The reported email is attacker controlled; an unescaped
subject would run script in the analyst's mail client.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List

from .email_record import EmailRecord, ReportKind, utc_now
from .report_errors import InvalidReporterIdentity
from ..utils.sanitization import escape_html, sanitize_for_logging
from ..utils.security_validators import is_valid_reporter_identity, to_utc

REPORT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"
ACTION_REQUIRED_TEXT = "User has requested investigation and expects a response."

CELL_STYLE = "padding: 8px; border: 1px solid #ddd;"
SHADED_ROW = ' style="background: #f5f5f5;"'


@dataclass(frozen=True)
class RenderedReport:
    """The two report bodies"""
    plain_body: str
    html_body: str


def format_utc(value: datetime) -> str:
    """Format a datetime as 'yyyy-MM-dd HH:mm:ss UTC'"""
    return to_utc(value).strftime(REPORT_TIME_FORMAT)


class ReportRenderer:
    """Renders an EmailRecord into report bodies"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        """
        Initialize renderer

        Args:
            clock: Returns the report timestamp (UTC)
        """
        self.clock = clock
        self.logger = logging.getLogger("ReportRenderer")

    def render(self, record: EmailRecord, kind: ReportKind, reporter: str) -> RenderedReport:
        """
        Render both report bodies

        Args:
            record: Fully populated, sanitized record
            kind: Phishing or Investigation
            reporter: Acting user's email address

        Returns:
            RenderedReport

        Raises:
            InvalidReporterIdentity: If reporter is not email-shaped; raised
                before any body is built
        """
        if not is_valid_reporter_identity(reporter):
            self.logger.error(
                f"Invalid reporter identity: '{sanitize_for_logging(str(reporter or ''), 64)}'"
            )
            raise InvalidReporterIdentity("Invalid user email format")

        report_time = format_utc(self.clock())
        email_date = format_utc(record.date)

        return RenderedReport(
            plain_body=self._plain_body(record, kind, reporter, report_time, email_date),
            html_body=self._html_body(record, kind, reporter, report_time, email_date)
        )

    @staticmethod
    def _plain_body(
        record: EmailRecord,
        kind: ReportKind,
        reporter: str,
        report_time: str,
        email_date: str
    ) -> str:
        attachments = ", ".join(record.attachment_names) or "None"

        lines = [
            kind.title,
            f"Reported: {report_time}",
            f"Reporter: {reporter}",
            "",
            "SUSPICIOUS EMAIL DETAILS:",
            f"• From: {record.sender}",
            f"• To: {record.recipient}",
        ]
        if record.reply_to:
            lines.append(f"• Reply-To: {record.reply_to}")
        lines.append(f"• Subject: {record.subject}")
        lines.append(f"• Date: {email_date}")
        if record.message_id:
            lines.append(f"• Message-ID: {record.message_id}")
        if record.user_agent:
            lines.append(f"• User-Agent: {record.user_agent}")
        lines.append(f"• Attachments: {attachments}")
        lines.append("")
        lines.append("Original email attached as .eml file with full headers preserved.")

        body = "\n".join(lines)
        if kind.expects_response:
            body += f"\n\n⚠️ ACTION REQUIRED: {ACTION_REQUIRED_TEXT}\n"
        return body

    @staticmethod
    def _html_body(
        record: EmailRecord,
        kind: ReportKind,
        reporter: str,
        report_time: str,
        email_date: str
    ) -> str:
        if record.attachments:
            attachments_html = ", ".join(escape_html(name) for name in record.attachment_names)
        else:
            attachments_html = "None"

        investigation_alert = ""
        if kind.expects_response:
            investigation_alert = (
                '<div style="background: #fff3cd; border: 1px solid #ffeaa7; padding: 12px; '
                'margin: 20px 0; border-left: 4px solid #fbbc04;">\n'
                f"    <strong>⚠️ ACTION REQUIRED:</strong> {ACTION_REQUIRED_TEXT}\n"
                "  </div>"
            )

        # Alternate row shading; Reply-To is highlighted when present
        rows: List[str] = []

        def add_row(label: str, value_html: str, value_style: str = "") -> None:
            shade = SHADED_ROW if len(rows) % 2 == 0 else ""
            rows.append(
                f"    <tr{shade}>\n"
                f'      <td style="{CELL_STYLE}"><strong>{label}:</strong></td>\n'
                f'      <td style="{CELL_STYLE}{value_style}">{value_html}</td>\n'
                "    </tr>"
            )

        add_row("From", escape_html(record.sender))
        add_row("To", escape_html(record.recipient))
        if record.reply_to:
            add_row(
                "Reply-To",
                f"<strong>{escape_html(record.reply_to)}</strong>",
                " color: #d93025;"
            )
        add_row("Subject", escape_html(record.subject))
        add_row("Date", escape_html(email_date))
        if record.message_id:
            add_row(
                "Message-ID",
                escape_html(record.message_id),
                " font-family: monospace; font-size: 12px;"
            )
        if record.user_agent:
            add_row("User-Agent", escape_html(record.user_agent))
        add_row("Attachments", attachments_html)

        table_rows = "\n".join(rows)

        return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px;">
  <h2 style="color: {kind.color};">
    {kind.title}
  </h2>

  <div style="background: #f5f5f5; padding: 10px; margin: 10px 0;">
    <strong>Reported:</strong> {escape_html(report_time)}<br>
    <strong>Reporter:</strong> {escape_html(reporter)}
  </div>

  {investigation_alert}

  <h3>Suspicious Email Details</h3>
  <table style="border-collapse: collapse; width: 100%;">
{table_rows}
  </table>

  <p style="margin-top: 20px; padding: 10px; background: #e8f5e9; border-left: 4px solid #34a853;">
    <strong>Attachment:</strong> Original email (.eml) with full headers preserved.
  </p>
</div>
"""
