"""
tokengov Logging

Every module logs through `get_logger(__name__)`. The root logger is set up
once per process: a rich console handler on stderr (stdout stays free for
command output) and, when enabled, a rotating file handler.

Proposal descriptions are arbitrary user text, so every record is passed
through `TerminalSafeFormatter` before it reaches a terminal or a file.

    >>> from tokengov.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Proposal #1 created")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE_OUTPUT,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)

LOG_FILE_PATH = Path(__file__).parent.parent / "logs" / "tokengov.log"

TOKENGOV_THEME = Theme({
    "tokengov.address":        "cyan",
    "tokengov.amount":         "bold white",
    "tokengov.arrow":          "bold yellow",
    "tokengov.level_critical": "bold red reverse",
    "tokengov.level_debug":    "bold dim",
    "tokengov.level_error":    "bold red",
    "tokengov.level_info":     "bold green",
    "tokengov.level_warning":  "bold yellow",
    "tokengov.logger_name":    "magenta",
    "tokengov.outcome_fail":   "bold red",
    "tokengov.outcome_pass":   "bold green",
    "tokengov.proposal":       "bold magenta",
    "tokengov.timestamp":      "bold cyan",
})


def checked_formats(log_format: str, date_format: str) -> Tuple[str, str]:
    """
    Return usable (log_format, date_format), falling back to the defaults
    for whichever one cannot format a sample record.
    """
    fmt, datefmt = str(log_format or ""), str(date_format or "")
    sample = logging.LogRecord("tokengov", logging.INFO, "", 0, "sample", (), None)

    try:
        logging.Formatter(fmt=fmt, validate=True).format(sample)
    except (ValueError, KeyError, TypeError) as e:
        sys.stderr.write(f"tokengov.logger: bad LOG_FORMAT ({e}), using default\n")
        fmt = str(LOG_FORMAT.default())

    if "%" not in datefmt or "%" in time.strftime(datefmt).replace("%%", ""):
        sys.stderr.write("tokengov.logger: bad LOG_DATE_FORMAT, using default\n")
        datefmt = str(LOG_DATE_FORMAT.default())

    return fmt, datefmt


class LogManager:
    """Process-wide owner of the root logger's handlers (singleton)."""

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._configured = False
        return cls._instance

    @property
    def is_configured(self) -> bool:
        return self._configured

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Install handlers on the root logger. No-op once configured.

        Args:
            log_level: DEBUG, INFO, ...; defaults to LOG_LEVEL from .env
            log_file: Rotating log file; defaults to logs/tokengov.log
            console_output: Attach the stderr console handler
            file_output: Attach the file handler; defaults to LOG_FILE_OUTPUT
        """
        with self._lock:
            if self._configured:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            fmt, datefmt = checked_formats(LOG_FORMAT, LOG_DATE_FORMAT)
            formatter = TerminalSafeFormatter(fmt=fmt, datefmt=datefmt + " UTC")
            formatter.converter = time.gmtime

            root = logging.getLogger()
            root.setLevel(level)
            root.handlers.clear()

            handlers = []
            if console_output:
                handlers.append(self._console_handler())
            if LOG_FILE_OUTPUT if file_output is None else file_output:
                handlers.append(self._file_handler(log_file or LOG_FILE_PATH))

            for handler in handlers:
                handler.setLevel(level)
                handler.setFormatter(formatter)
                root.addHandler(handler)

            self._configured = True

    @staticmethod
    def _console_handler() -> logging.Handler:
        if not LOG_CONSOLE_HIGHLIGHTING:
            return logging.StreamHandler(sys.stderr)
        return RichHandler(
            console=Console(theme=TOKENGOV_THEME, highlight=False, stderr=True),
            highlighter=TokenGovLogHighlighter(),
            keywords=[],
            markup=False,
            rich_tracebacks=True,
            show_level=False,
            show_path=False,
            show_time=False,
        )

    @staticmethod
    def _file_handler(path: Path) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )

    def reconfigure(self, **kwargs) -> None:
        """Drop the current handlers and configure again (used by the CLI)."""
        with self._lock:
            self._configured = False
        self.configure(**kwargs)

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


class TerminalSafeFormatter(logging.Formatter):
    """Formatter that strips ANSI escapes and control characters (CWE-117)."""

    _unsafe = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"          # CSI sequences
        r"|\x1b[@-Z\\-_]"                   # lone ESC sequences
        r"|[\x00-\x08\x0B-\x1F\x7F]"        # control chars except tab and newline
    )

    @classmethod
    def sanitize(cls, text: str) -> str:
        return cls._unsafe.sub("", text) if text else text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class TokenGovLogHighlighter(RegexHighlighter):
    """Highlights addresses, proposal ids, outcomes and amounts."""

    base_style = "tokengov."
    highlights = [
        r"(?P<arrow>→|-->|<--)",
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<proposal>#\d+)",
        r"(?P<outcome_pass>\b(PASSED|EXECUTED)\b)",
        r"(?P<outcome_fail>\bFAILED\b)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<amount>\b(weight|amount|supply)=\d+\b)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Module logger; configures logging on first use."""
    return _manager.get_logger(name)


def configure_logging(**kwargs) -> None:
    """Re-apply logging configuration with explicit overrides."""
    _manager.reconfigure(**kwargs)


_manager.configure()
