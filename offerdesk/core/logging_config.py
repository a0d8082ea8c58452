"""
Logging setup for the offerdesk service.
Call setup_logging() once when the app is built.
"""
import logging
from datetime import datetime, timezone


class HumanFormatter(logging.Formatter):
    """Compact console format: time, level initial, logger, message."""

    def format(self, record):
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        line = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))

    # idempotent: app factories may run several times in one process
    for handler in root.handlers:
        if getattr(handler, "_offerdesk", False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(HumanFormatter())
    handler._offerdesk = True
    root.addHandler(handler)

    # APScheduler is chatty at INFO about every job run
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
