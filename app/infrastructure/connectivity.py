"""
Infrastructure layer: Network connectivity state.
"""
import logging
from typing import Optional

from app.config import settings

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Tracks whether the remote service is believed to be reachable.

    Instances are callable and return the current state, so a plain
    ``lambda: False`` can be injected instead in tests.
    """

    def __init__(self, online: Optional[bool] = None):
        self._online = settings.assume_online if online is None else online

    def __call__(self) -> bool:
        return self._online

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        self._online = online
