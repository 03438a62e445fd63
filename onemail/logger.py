import logging
import re

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

custom_theme = Theme(
    {
        "info": "dim cyan",
        "warning": "magenta",
        "error": "bold red",
        "node": "bold blue",
        "engine": "bold green",
    }
)

console = Console(theme=custom_theme)


class CompactFilter(logging.Filter):
    """Shortens UUIDs and float numbers and masks API keys before records are emitted."""

    # Regex for UUID (standard 8-4-4-4-12 format)
    UUID_PATTERN = re.compile(
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.I
    )
    # Regex for long floats (4+ decimal places)
    FLOAT_PATTERN = re.compile(r"(\d+\.\d{4,})")
    # Header dumps ("X-BCP-API-KEY': 'abc'") and assignments ("api_key=abc")
    SECRET_PATTERN = re.compile(
        r"""((?:x-bcp-api-key|api_?key)['"]?\s*[:=]\s*['"]?)([^'",\s}]+)""", re.I
    )

    def filter(self, record):
        if not isinstance(record.msg, str):
            return True

        msg = record.msg
        if record.args:
            msg = record.getMessage()
            record.args = None

        msg = msg.replace("onemail.workflows.engine.", "engine.")
        msg = msg.replace("onemail.node_packages.", "node.")

        # 1. Never let a key reach the console
        msg = self.SECRET_PATTERN.sub(lambda m: f"{m.group(1)}***", msg)

        # 2. a1e9166a-15f5-4ccf-b2ff-a6a92c37e645 -> a1e9..
        msg = self.UUID_PATTERN.sub(lambda m: f"{m.group(0)[:4]}..", msg)

        # 3. 0.012413125 -> 0.012
        msg = self.FLOAT_PATTERN.sub(lambda m: f"{float(m.group(0)):.3f}", msg)

        record.msg = msg
        return True


def setup_global_logger(log_level: str = "INFO"):
    """
    Configures the package logger using Rich for readable console output.
    """
    logger = logging.getLogger("onemail")

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if not logger.handlers:
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            markup=False,
            show_path=False,
            show_time=True,
            omit_repeated_times=True,
            keywords=["automation", "node", "engine", "preSend"],
        )

        formatter = logging.Formatter("%(message)s", datefmt="[%X]")
        rich_handler.setFormatter(formatter)
        rich_handler.addFilter(CompactFilter())
        logger.addHandler(rich_handler)

    return logger


# Export a module-level logger for simple imports
logger = logging.getLogger("onemail")
