"""Process-wide network stack lifecycle."""

import logging
import sys
import threading

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_started = False


def ensure_network_started() -> bool:
    """
    Start the network stack once per process.

    CPython's socket module performs Winsock startup when it is imported,
    so there is nothing to call here on any platform. The flag still
    guards the lifecycle so repeated opens do not re-run setup.

    Returns:
        True if this call performed the startup, False if already started
    """
    global _started
    with _lock:
        if _started:
            return False
        logger.debug("Network stack started (platform=%s)", sys.platform)
        _started = True
        return True


def shutdown_network() -> None:
    """
    Mark the network stack as stopped.

    Applications call this once at process exit, after every client is
    closed. A later open starts the stack again. Safe to call repeatedly.
    """
    global _started
    with _lock:
        if _started:
            logger.debug("Network stack stopped")
        _started = False


def network_started() -> bool:
    """Return whether the network stack has been started."""
    return _started
