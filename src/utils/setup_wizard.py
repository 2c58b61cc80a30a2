"""
Interactive setup wizard for initial configuration.
Asks for the handful of values a report cannot be sent without.
"""

import getpass
from dotenv import set_key
from .colors import Colors

def run_setup_wizard(config_file: str) -> bool:
    """Run interactive setup wizard for .env configuration"""
    print(f"\n{Colors.CYAN}🔧 Configuration Wizard{Colors.RESET}")
    print(f"{Colors.GREY}Let's set up where reports go and how they are sent.{Colors.RESET}\n")

    security_email = input(f"  {Colors.BOLD}Security team address:{Colors.RESET} ").strip()
    if "@" not in security_email:
        print(f"  {Colors.RED}❌ A valid address is required{Colors.RESET}\n")
        return False

    reporter = input(f"  {Colors.BOLD}Your address (reporter):{Colors.RESET} ").strip()

    try:
        _update_env(config_file, "SECURITY_EMAIL", security_email)
        if reporter:
            _update_env(config_file, "REPORTER_EMAIL", reporter)

        if _confirm("Send reports by SMTP?"):
            server = input(f"  {Colors.BOLD}SMTP server:{Colors.RESET} ").strip()
            username = input(f"  {Colors.BOLD}SMTP username:{Colors.RESET} ").strip()
            password = getpass.getpass(f"  {Colors.BOLD}SMTP password:{Colors.RESET} ").strip()
            _update_env(config_file, "DELIVERY_METHOD", "smtp")
            _update_env(config_file, "SMTP_SERVER", server)
            _update_env(config_file, "SMTP_USERNAME", username)
            _update_env(config_file, "SMTP_PASSWORD", password)
            print(f"  {Colors.GREEN}✔ SMTP configured{Colors.RESET}\n")
    except OSError as e:
        print(f"  {Colors.RED}❌ Error saving configuration: {e}{Colors.RESET}\n")
        return False

    print(f"{Colors.GREEN}Configuration saved to {config_file}{Colors.RESET}")
    print(f"{Colors.GREY}You can edit other settings manually in the file.{Colors.RESET}\n")
    return True

def _confirm(question: str) -> bool:
    """Ask a yes/no question"""
    try:
        response = input(f"{question} [Y/n] ").strip().lower()
        return response in ('', 'y', 'yes')
    except EOFError:
        return False

def _update_env(file: str, key: str, value: str):
    """Update a key in the .env file"""
    # quote_mode="auto" handles values with spaces or special chars correctly
    set_key(file, key, value, quote_mode="auto")
