import os
import sys
import shutil
import signal
import argparse
from pathlib import Path
from typing import Optional, List, NoReturn

from src.utils.config import Config
from src.utils.colors import Colors
from src.utils.setup_wizard import run_setup_wizard
from src.modules.email_record import ReportKind


def build_arg_parser() -> argparse.ArgumentParser:
    """CLI: phish-reporter [--env FILE] [--investigation] (--eml PATH | --uid UID)"""
    parser = argparse.ArgumentParser(
        prog="phish-reporter",
        description="Report a suspicious email to the security team."
    )
    parser.add_argument("--env", dest="config_file", default=".env",
                        help="configuration file (default: .env)")
    parser.add_argument("--investigation", action="store_true",
                        help="request an investigation (security team responds)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--eml", dest="eml_path", help="path to a saved .eml message")
    source.add_argument("--uid", help="IMAP UID of the message in IMAP_FOLDER")
    return parser


class AppRunner:
    """Startup checks, configuration verification and one report run."""

    def __init__(self, args: Optional[List[str]] = None) -> None:
        """
        Initialize the runner with CLI arguments.

        Args:
            args: Command line arguments without the program name (defaults to sys.argv[1:])
        """
        self.options = build_arg_parser().parse_args(args if args is not None else sys.argv[1:])
        self.config_file = self.options.config_file

    @property
    def kind(self) -> ReportKind:
        return ReportKind.INVESTIGATION if self.options.investigation else ReportKind.PHISHING

    def run(self) -> None:
        """Execute the main application flow."""
        self.setup_signal_handlers()
        self.print_banner()
        self.ensure_config_exists()
        self.validate_config()
        self.start_report()

    def setup_signal_handlers(self) -> None:
        """Register handlers for graceful shutdown."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    @staticmethod
    def _signal_handler(signum, frame) -> NoReturn:
        """Handle shutdown signals."""
        print("\nReceived shutdown signal, stopping...")
        raise KeyboardInterrupt

    def print_banner(self) -> None:
        """Print the application startup banner."""
        print(Colors.colorize("=" * 80, Colors.CYAN))
        print(Colors.colorize("Phish Reporter", Colors.BOLD + Colors.CYAN))
        print(Colors.colorize("Report suspicious emails to the security team", Colors.GREY))
        print(Colors.colorize("=" * 80, Colors.CYAN))
        print()

    def ensure_config_exists(self) -> None:
        """Check if the configuration file exists, and offer interactive setup if not."""
        if Path(self.config_file).exists():
            return

        if Path(".env.example").exists() and sys.stdin.isatty():
            self._handle_missing_config_interactive()
        else:
            self._handle_missing_config_non_interactive()

    def _handle_missing_config_interactive(self) -> None:
        """Handle missing configuration interactively (wizard or copy)."""
        print(f"Configuration file '{self.config_file}' not found.")
        try:
            print(f"\n{Colors.CYAN}Would you like to run the interactive setup wizard?{Colors.RESET}")
            response = input("Run setup wizard? [Y/n] ").strip().lower()
            if response in ('', 'y', 'yes'):
                shutil.copy(".env.example", self.config_file)
                os.chmod(self.config_file, 0o600)
                run_setup_wizard(self.config_file)
                sys.exit(0)

            print("Please create a .env file based on .env.example")
            sys.exit(1)
        except EOFError:
            self._handle_missing_config_non_interactive()

    def _handle_missing_config_non_interactive(self) -> NoReturn:
        """Handle missing configuration when non-interactive or template is missing."""
        print(f"Error: Configuration file '{self.config_file}' not found")
        print("Please create a .env file based on .env.example")
        print("You can run: cp .env.example .env")
        sys.exit(1)

    def validate_config(self) -> None:
        """Refuse to start with placeholder values or an invalid configuration."""
        from src.utils.validators import check_default_credentials

        config = Config(self.config_file)

        errors = check_default_credentials(config)
        if errors:
            print(f"\n{Colors.RED}Configuration Error: Default values detected{Colors.RESET}")
            print(f"{Colors.GREY}Resolve the following in your .env file before reporting:{Colors.RESET}\n")
            for error in errors:
                print(f"  • {Colors.YELLOW}{error}{Colors.RESET}")
            print(f"\nPlease edit {Colors.BOLD}{self.config_file}{Colors.RESET}.")
            sys.exit(1)

        try:
            config.validate()
        except ValueError as e:
            print(Colors.error(f"Invalid configuration: {e}"))
            sys.exit(1)

        print(Colors.success(f"✓ Reports will be sent to: {config.report.security_email}"))

    def start_report(self) -> None:
        """Run one report and exit with its status."""
        from src.main import PhishReporterApp

        if not self.options.eml_path and not self.options.uid:
            print(Colors.error("Please select an email first (--eml PATH or --uid UID)."))
            sys.exit(2)

        print(Colors.colorize(f"Report type: {self.kind.value}", Colors.get_kind_color(self.kind.value)))
        app = PhishReporterApp(self.config_file)
        outcome = app.report(self.kind, eml_path=self.options.eml_path, uid=self.options.uid)

        color = Colors.GREEN if outcome.success else Colors.RED
        print(Colors.colorize(f"\n{outcome.title}", color + Colors.BOLD))
        print(outcome.subtitle)
        print(outcome.message)
        sys.exit(0 if outcome.success else 1)
