import logging
import sys

import structlog

from config import LOG_LEVEL

_configured = False


def configure_logging(level=LOG_LEVEL):
    global _configured
    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.dict_tracebacks,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
    # apscheduler is chatty at INFO for every job run
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    _configured = True
    structlog.get_logger(__name__).info("logging_configured", level=level)
