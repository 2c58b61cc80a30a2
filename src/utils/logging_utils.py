import logging
import copy
from src.utils.colors import Colors


class ColoredFormatter(logging.Formatter):
    """
    Custom formatter to add colors to log levels and specific messages.
    Highlights sent reports and tier fallbacks on the console.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GREY,
        logging.INFO: Colors.BLUE,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED
    }

    def format(self, record):
        # Copy so the file handler never sees ANSI codes
        record = copy.copy(record)

        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"

        if isinstance(record.msg, str):
            if " sent: " in record.msg:
                record.msg = f"{Colors.GREEN}{record.msg}{Colors.RESET}"
            elif "Degraded extraction" in record.msg:
                record.msg = f"{Colors.MAGENTA}{record.msg}{Colors.RESET}"
            elif record.msg.startswith("Connect"):
                record.msg = f"{Colors.GREY}{record.msg}{Colors.RESET}"

        return super().format(record)
