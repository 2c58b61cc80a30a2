"""
Header Block Parser Module
Pulls the handful of headers the report needs out of raw message text

PATTERN RECOGNITION: This is deliberately shallow. The header block is the
text before the first blank line, and each header is found with one
case-insensitive, line-anchored pattern. Folded (multi-line) header values
keep only their first line.

SECURITY STORY: Raw message text is untrusted. Parsing never raises: a
missing, malformed or headerless block simply yields absent values, so a
hostile message cannot break the report flow at this layer.
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# First empty line, tolerating both CRLF and LF
HEADER_BODY_SEPARATOR = re.compile(r"\r?\n\r?\n")

HEADER_PATTERNS: Dict[str, "re.Pattern"] = {
    "subject": re.compile(r"^Subject:[ \t]*(.*)$", re.I | re.M),
    "sender": re.compile(r"^From:[ \t]*(.*)$", re.I | re.M),
    "recipient": re.compile(r"^To:[ \t]*(.*)$", re.I | re.M),
    "reply_to": re.compile(r"^Reply-To:[ \t]*(.*)$", re.I | re.M),
    "date": re.compile(r"^Date:[ \t]*(.*)$", re.I | re.M),
    "message_id": re.compile(r"^Message-ID:[ \t]*(.*)$", re.I | re.M),
}

# Checked in order, first header present wins
USER_AGENT_PATTERNS = (
    re.compile(r"^User-Agent:[ \t]*(.*)$", re.I | re.M),
    re.compile(r"^X-Mailer:[ \t]*(.*)$", re.I | re.M),
)


@dataclass(frozen=True)
class RawHeaders:
    """Header values exactly as found (trimmed, not yet sanitized)"""
    subject: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    reply_to: Optional[str] = None
    date: Optional[str] = None
    message_id: Optional[str] = None
    user_agent: Optional[str] = None


def split_header_block(raw_content: str) -> str:
    """
    Return the header block of a raw message.

    Args:
        raw_content: Full message text

    Returns:
        Text before the first blank line (the whole input if there is none)
    """
    if not raw_content:
        return ""
    return HEADER_BODY_SEPARATOR.split(raw_content, maxsplit=1)[0]


class HeaderBlockParser:
    """Extracts named headers from the header block of a raw message"""

    def parse(self, raw_content: str) -> RawHeaders:
        """
        Extract Subject, From, To, Reply-To, Date, Message-ID and
        User-Agent (or X-Mailer) from raw message text.

        Args:
            raw_content: Full message text

        Returns:
            RawHeaders with None for every header not present
        """
        header_block = split_header_block(raw_content)

        values = {
            key: self._first_match(pattern, header_block)
            for key, pattern in HEADER_PATTERNS.items()
        }

        user_agent = None
        for pattern in USER_AGENT_PATTERNS:
            user_agent = self._first_match(pattern, header_block)
            if user_agent is not None:
                break

        headers = RawHeaders(user_agent=user_agent, **values)
        logger.debug(
            "Parsed header block: %s",
            ", ".join(key for key, value in vars(headers).items() if value is not None) or "none"
        )
        return headers

    @staticmethod
    def _first_match(pattern: "re.Pattern", header_block: str) -> Optional[str]:
        match = pattern.search(header_block)
        if not match:
            return None
        return match.group(1).strip()
