"""
FAQ Set Change Notifications
Hook invoked after a published FAQ entry is created, consumed by the site publisher
"""

from datetime import datetime, timezone
from typing import Callable, Protocol

import httpx
import structlog

logger = structlog.get_logger()

FAQ_SET_CHANGED = "faq_set_changed"


class FAQSetListener(Protocol):
    def faq_set_changed(self, app_id: str) -> None:
        ...


class CallbackListener:
    """Fans a change event out to in-process callbacks"""

    def __init__(self, *callbacks: Callable[[str], None]):
        self._callbacks = list(callbacks)

    def subscribe(self, callback: Callable[[str], None]) -> None:
        self._callbacks.append(callback)

    def faq_set_changed(self, app_id: str) -> None:
        for callback in self._callbacks:
            callback(app_id)


class WebhookListener:
    """Posts change events to the site-publishing service"""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def faq_set_changed(self, app_id: str) -> None:
        response = httpx.post(
            self.url,
            json={
                "appId": app_id,
                "event": FAQ_SET_CHANGED,
                "occurredAt": datetime.now(timezone.utc).isoformat(),
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.info("Sent FAQ set change notification", app_id=app_id, url=self.url)
