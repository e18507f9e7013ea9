import logging
import os
import traceback
from logging.handlers import RotatingFileHandler
from typing import Optional

from colorama import Fore, Style, just_fix_windows_console

just_fix_windows_console()

_HANDLER_MARKER = "_routeoptima_handler"


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED,
        "DEBUG": Fore.CYAN,
    }

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        record.asctime = self.formatTime(record, self.datefmt)
        log_message = f"{record.asctime} - {record.levelname} - {record.name} - {record.message}"
        if record.exc_info and record.levelno >= logging.ERROR:
            log_message += f"\n{''.join(traceback.format_exception(*record.exc_info))}"
        return f"{self.COLORS.get(record.levelname, '')}{log_message}{Style.RESET_ALL}"


def setup_logging(log_level: str, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger with a colored console handler and,
    when log_file is set, a rotating file handler.

    Safe to call more than once: handlers installed by an earlier call are replaced.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    setattr(console_handler, _HANDLER_MARKER, True)
    root.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        setattr(file_handler, _HANDLER_MARKER, True)
        root.addHandler(file_handler)
