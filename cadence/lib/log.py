import logging
import sys
from pathlib import Path

from cadence import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _OwnLogsFilter(logging.Filter):
    """Only cadence records reach the console; third-party noise needs ERROR."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "cadence" or record.name.startswith("cadence."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(verbose: bool = False, log_dir: Path | None = None) -> None:
    """Console gets warnings (or everything with -v); the log file gets DEBUG."""
    log_dir = log_dir if log_dir else config.CADENCE_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(fmt)
    console.addFilter(_OwnLogsFilter())
    root.addHandler(console)

    logfile = logging.FileHandler(log_dir / "cadence.log", encoding="utf-8")
    logfile.setLevel(logging.DEBUG)
    logfile.setFormatter(fmt)
    root.addHandler(logfile)

    logging.captureWarnings(True)
