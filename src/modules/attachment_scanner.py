"""
Attachment Scanner Module
Recovers declared attachment filenames from raw message text

The whole message is scanned, not just the top-level header block, because
attachment declarations live in the headers of nested MIME parts. Content
types are not classified; every entry gets the generic octet-stream type.
"""

import codecs
import re
import logging
from typing import List, Optional
from urllib.parse import unquote

from .email_record import AttachmentInfo, GENERIC_ATTACHMENT_TYPE
from ..utils.sanitization import sanitize_for_logging

logger = logging.getLogger(__name__)

ATTACHMENT_DECLARATION_PATTERN = re.compile(
    r"Content-Disposition:\s*(attachment|inline)[^;]*;\s*filename(\*?)=([^;\r\n]+)",
    re.I
)

# RFC 2231: charset'language'percent-encoded
RFC2231_VALUE_PATTERN = re.compile(r"^([A-Za-z0-9!#$%&+^_`{}~-]+)'[^']*'(.*)$")

QUOTE_CHARS = "\"'"


def decode_filename(value: str, extended: bool = False) -> str:
    """
    Turn a raw filename parameter into a display name.

    Surrounding quotes are stripped. Extended (``filename*``) values such as
    ``UTF-8''b%20c.txt`` are percent-decoded with their declared charset;
    an unrecognized charset leaves the value as declared. Plain ``filename``
    values are never percent-decoded, so apostrophes in ordinary names
    survive.

    Example:
        >>> decode_filename('"a.txt"')
        'a.txt'
        >>> decode_filename("UTF-8''b%20c.txt", extended=True)
        'b c.txt'
    """
    filename = value.strip().strip(QUOTE_CHARS).strip()

    match = RFC2231_VALUE_PATTERN.match(filename) if extended else None
    if match:
        charset, encoded = match.group(1), match.group(2)
        try:
            codecs.lookup(charset)
        except LookupError:
            logger.debug(f"Unknown RFC 2231 charset '{sanitize_for_logging(charset, 40)}'")
        else:
            filename = unquote(encoded, encoding=charset, errors="replace")

    return filename.strip()


class AttachmentScanner:
    """Finds attachment and inline part declarations in raw message text"""

    def scan(self, raw_content: str) -> List[AttachmentInfo]:
        """
        List every declared attachment in order of appearance.

        Duplicate names are kept; each one is a separate declared part.
        Declarations whose name decodes to nothing are dropped.

        Args:
            raw_content: Full message text

        Returns:
            List of AttachmentInfo
        """
        attachments: List[AttachmentInfo] = []
        if not raw_content:
            return attachments

        for match in ATTACHMENT_DECLARATION_PATTERN.finditer(raw_content):
            name = self._name_from_match(match)
            if not name:
                logger.debug("Skipping attachment declaration with empty filename")
                continue
            attachments.append(AttachmentInfo(name=name, type=GENERIC_ATTACHMENT_TYPE))

        if attachments:
            logger.debug(
                "Found %d attachment declaration(s): %s",
                len(attachments),
                sanitize_for_logging(", ".join(a.name for a in attachments))
            )
        return attachments

    @staticmethod
    def _name_from_match(match: "re.Match") -> Optional[str]:
        return decode_filename(match.group(3), extended=bool(match.group(2))) or None
