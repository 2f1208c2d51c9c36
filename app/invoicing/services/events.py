"""
Post-commit view invalidation events.

The workflow announces which presentation views are stale after it commits;
subscribers (cache purgers, websocket pushers) decide what to do with that.
"""

import logging
import uuid
from collections.abc import Callable

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"
HISTORY_PATH = "/history"


def invoice_path(invoice_id: uuid.UUID | str) -> str:
    """View path of a single invoice."""
    return f"/invoices/{invoice_id}"


ViewSubscriber = Callable[[str], None]


class ViewRefreshNotifier:
    """Fans out invalidated view paths to registered subscribers."""

    def __init__(self):
        self._subscribers: list[ViewSubscriber] = []

    def subscribe(self, callback: ViewSubscriber) -> None:
        """Register a callback receiving each invalidated path."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: ViewSubscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def invalidate(self, *paths: str) -> None:
        """
        Notify subscribers that the given views are stale.

        A failing subscriber is logged and skipped; entity state is already
        committed when this runs.
        """
        for path in paths:
            logger.debug("View invalidated: %s", path)
            for callback in list(self._subscribers):
                try:
                    callback(path)
                except Exception:
                    logger.exception("View subscriber failed for %s", path)


_notifier: ViewRefreshNotifier | None = None


def get_view_notifier() -> ViewRefreshNotifier:
    """Get or create the notifier singleton."""
    global _notifier
    if _notifier is None:
        _notifier = ViewRefreshNotifier()
    return _notifier
