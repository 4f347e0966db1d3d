import logging
from collections import deque

import structlog

LOG_BUFFER = deque(maxlen=5000)
LOG_FORMAT = "%(asctime)s  %(levelname)s  %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


class UILogHandler(logging.Handler):
    """Keeps formatted records in LOG_BUFFER for the UI log panel."""

    def emit(self, record):
        msg = self.format(record)
        LOG_BUFFER.append((record.levelno, msg))


def get_ui_log_handler() -> UILogHandler:
    uih = UILogHandler()
    uih.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    return uih


def configure_logging(level: int = logging.INFO, *, ui: bool = True) -> None:
    """Route structlog through stdlib logging, into the UI buffer or stderr."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if ui:
        root.addHandler(get_ui_log_handler())
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        root.addHandler(handler)
