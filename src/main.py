#!/usr/bin/env python3
"""
Phish Reporter
Wires configuration, message sources, renderer and delivery channel together
"""

import sys
import logging
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.utils.config import Config
from src.utils.logging_utils import ColoredFormatter
from src.utils.structured_logging import JSONFormatter
from src.modules.delivery import create_delivery_channel
from src.modules.email_record import ReportKind
from src.modules.extraction import ExtractionOrchestrator
from src.modules.identity import IdentityProvider, MailboxIdentityProvider, StaticIdentityProvider
from src.modules.message_sources import (
    EmlFileSource,
    IMAPMessageSource,
    ParsedSummarySource,
    RawMessageSource,
)
from src.modules.phish_reporter import PhishReporter, ReportOutcome
from src.modules.report_renderer import ReportRenderer

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class PhishReporterApp:
    """Process-level setup for one report"""

    def __init__(self, config_file: str = ".env"):
        """
        Initialize application

        Args:
            config_file: Path to configuration file
        """
        self.config = Config(config_file)
        self._setup_logging()
        self.logger = logging.getLogger("PhishReporterApp")

    def _setup_logging(self):
        """Setup logging configuration"""
        log_path = Path(self.config.system.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        level_name = str(self.config.system.log_level).upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO

        file_handler = logging.FileHandler(self.config.system.log_file)
        console_handler = logging.StreamHandler(sys.stdout)

        if self.config.system.log_format == "json":
            file_handler.setFormatter(JSONFormatter())
            console_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            console_handler.setFormatter(ColoredFormatter(LOG_FORMAT))

        logging.basicConfig(level=level, handlers=[file_handler, console_handler], force=True)

        if not isinstance(logging.getLevelName(level_name), int):
            logging.getLogger("PhishReporterApp").warning(
                "Invalid log level '%s'; defaulting to INFO",
                self.config.system.log_level
            )

    def build_reporter(self, raw_source: RawMessageSource) -> PhishReporter:
        """
        Assemble the report workflow around a raw message source

        The fallback tier parses the same source with the email package.
        """
        extractor = ExtractionOrchestrator(raw_source, ParsedSummarySource(raw_source))
        return PhishReporter(
            config=self.config.report,
            extractor=extractor,
            renderer=ReportRenderer(),
            identity=self._identity_provider(raw_source),
            channel=create_delivery_channel(self.config.delivery)
        )

    def _identity_provider(self, raw_source: RawMessageSource) -> IdentityProvider:
        if self.config.report.reporter_email:
            return StaticIdentityProvider(self.config.report.reporter_email)
        if isinstance(raw_source, IMAPMessageSource):
            return MailboxIdentityProvider(self.config.mailbox)
        return StaticIdentityProvider("")

    def report(
        self,
        kind: ReportKind,
        eml_path: Optional[str] = None,
        uid: Optional[str] = None
    ) -> ReportOutcome:
        """
        Report one message, read from a .eml file or by IMAP UID

        Args:
            kind: Report kind
            eml_path: Path to a saved message
            uid: IMAP UID in the configured folder

        Returns:
            ReportOutcome
        """
        if eml_path:
            source: RawMessageSource = EmlFileSource()
            message_id = eml_path
        else:
            source = IMAPMessageSource(self.config.mailbox)
            message_id = uid

        self.logger.info(f"Starting {kind.value} report")
        return self.build_reporter(source).report(message_id, kind)


def main():
    """Main entry point"""
    from src.app_runner import AppRunner
    AppRunner().run()


if __name__ == "__main__":
    main()
