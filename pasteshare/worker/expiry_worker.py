from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import NoReturn, Optional

from flask import Flask

from pasteshare.services.paste_service import PasteService, PasteStoreError


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0

_worker_started = False
_worker_lock = threading.Lock()


def sweep_once(service: PasteService, *, now: Optional[datetime] = None) -> int:
    """
    Delete pastes that are already unreachable, returning how many went.

    Store failures are logged and the cycle is skipped.
    """

    try:
        deleted = service.purge_expired(now=now)
    except PasteStoreError:
        logger.warning(
            "Expiry sweep: store unavailable; skipping cycle",
            extra={
                "event": "expiry_sweep_error",
                "correlation_id": "expiry-worker",
            },
        )
        return 0

    if deleted:
        logger.info(
            "Expiry sweep: deleted expired pastes",
            extra={
                "event": "expiry_sweep_deleted",
                "deleted": deleted,
                "correlation_id": "expiry-worker",
            },
        )
    return deleted


def _expiry_loop(service: PasteService, interval: float) -> NoReturn:
    """Background loop that periodically purges expired pastes."""

    while True:
        sweep_once(service)
        time.sleep(interval)


def start_expiry_worker(app: Flask) -> bool:
    """
    Start the expiry worker in a background thread.

    This function is idempotent and will only start a single worker thread
    per process. Returns whether a thread was started by this call.
    """

    global _worker_started
    with _worker_lock:
        if _worker_started:
            return False

        thread = threading.Thread(
            target=_expiry_loop,
            args=(
                app.extensions["pasteshare.paste_service"],
                float(app.config.get("EXPIRY_SWEEP_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS)),
            ),
            name="expiry-worker",
            daemon=True,
        )
        thread.start()
        _worker_started = True
        return True
