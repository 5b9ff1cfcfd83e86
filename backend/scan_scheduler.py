"""
scan_scheduler.py
- Shared BackgroundScheduler: runs the pipeline's settle-delay jobs and the
  passive rescan tick
- RUN_LOCK keeps manual refreshes and the passive tick from overlapping
"""

from threading import Lock

import structlog
from apscheduler.schedulers.background import BackgroundScheduler

from config import PASSIVE_SCAN_INTERVAL_SEC

logger = structlog.get_logger(__name__)

# shared no-overlap lock used by server + scheduler
RUN_LOCK = Lock()
REQUEST_TIMEOUT_SEC = 5

scheduler = BackgroundScheduler()


def request_scan_now(pipeline, tag="manual"):
    """
    Ask the pipeline for a scan unless scanning is not authorized or one
    is already running. Returns False when skipped.
    """
    current = pipeline.state
    if not current.authorized or current.is_scanning or RUN_LOCK.locked():
        logger.info("scan_skipped", tag=tag)
        return False

    with RUN_LOCK:
        pipeline.scan_requested().result(timeout=REQUEST_TIMEOUT_SEC)
    return True


def passive_tick(pipeline):
    request_scan_now(pipeline, tag="passive")


def install_passive_tick(sched, pipeline, seconds=PASSIVE_SCAN_INTERVAL_SEC):
    sched.add_job(
        passive_tick,
        "interval",
        seconds=seconds,
        id="passive_tick",
        max_instances=1,
        replace_existing=True,
        args=[pipeline],
    )


__all__ = ["scheduler", "RUN_LOCK", "request_scan_now", "passive_tick", "install_passive_tick"]
