from __future__ import annotations

import logging
import subprocess
import threading
import time

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0


def _refresh_forever(interval: float) -> None:
    while True:
        time.sleep(interval)
        try:
            subprocess.run(
                ["sudo", "-n", "true"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError:
            logger.debug("sudo keepalive stopped", exc_info=True)
            return


def start_sudo_keepalive(interval: float = DEFAULT_INTERVAL) -> threading.Thread:
    """Refresh the sudo timestamp periodically for the rest of the process.

    Daemon thread: it is never joined and dies with the interpreter.
    """

    t = threading.Thread(target=_refresh_forever, args=(interval,), daemon=True, name="sudo-keepalive")
    t.start()
    logger.info("sudo keepalive started (every %ss)", int(interval))
    return t
