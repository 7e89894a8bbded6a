# Overview: Client-side notification relay; polls the feed and raises alerts for new messages.

"""
Notification Poller

Employee clients have no push channel. They poll ``GET /api/notifications``
on a fixed interval and compare the newest id against the last one seen.

RULES:
- The first poll after a session starts never alerts; it only records the
  newest id. ``reset()`` restores that state (login / account switch).
- Later polls alert when the newest id differs from the last seen id.
- last_seen_id is updated on every successful poll.
- Network failures and malformed feed replies are logged and skipped; the
  next tick tries again. ``run()`` never exits on a failed poll.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

FEED_PATH = "/api/notifications"


@dataclass(frozen=True)
class Alert:
    id: int
    message: str
    type: str
    level: int


def alert_level(notification_type: str) -> int:
    """Logging level for each notification type. Unknown types are a programming error."""
    if notification_type == "info":
        return logging.INFO
    elif notification_type == "success":
        return logging.INFO
    elif notification_type == "warning":
        return logging.WARNING
    elif notification_type == "error":
        return logging.ERROR
    raise ValueError(f"Unknown notification type: {notification_type!r}")


class RelayError(Exception):
    """The feed answered, but not with a list of notifications."""
    pass


class RelayClient:
    """Thin httpx wrapper around the notification feed."""

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    def fetch(self) -> list[dict]:
        response = self._client.get(FEED_PATH)
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise RelayError(f"Feed returned a non-JSON body ({response.headers.get('content-type')})") from exc

        notifications = body.get("notifications", []) if isinstance(body, dict) else None
        if not isinstance(notifications, list):
            raise RelayError("Feed body has no notifications list")
        for notification in notifications:
            if not isinstance(notification, dict) or "id" not in notification:
                raise RelayError("Feed returned a notification without an id")
        return notifications

    def close(self) -> None:
        self._client.close()


class NotificationWatcher:
    """Tracks the newest notification id across polls."""

    def __init__(self):
        self.last_seen_id: int | None = None
        self.first_poll = True

    def reset(self) -> None:
        self.last_seen_id = None
        self.first_poll = True

    def observe(self, notifications: list[dict]) -> dict | None:
        """Return the notification to alert on, if any. Expects newest first."""
        top = notifications[0] if notifications else None
        top_id = top["id"] if top else None

        is_new = top is not None and top_id != self.last_seen_id and not self.first_poll
        self.last_seen_id = top_id
        self.first_poll = False
        return top if is_new else None


class NotificationPoller:
    """
    Drives a NotificationWatcher from a RelayClient.

    Can be stepped with ``tick(now)`` (tests, event loops) or run on a
    background thread with ``start()`` / ``stop()``.
    """

    def __init__(
        self,
        client: RelayClient,
        *,
        interval: float = 10.0,
        on_alert: Callable[[Alert], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] | None = None,
        watcher: NotificationWatcher | None = None,
    ):
        self.client = client
        self.interval = interval
        self.on_alert = on_alert
        self.watcher = watcher or NotificationWatcher()
        self._clock = clock
        self._stop = threading.Event()
        self._sleep = sleep or self._stop.wait
        self._thread: threading.Thread | None = None
        self._next_due: float | None = None

    def tick(self, now: float | None = None) -> Alert | None:
        """Poll if the interval has elapsed since the last poll."""
        now = self._clock() if now is None else now
        if self._next_due is not None and now < self._next_due:
            return None
        self._next_due = now + self.interval
        return self.poll_once()

    def poll_once(self) -> Alert | None:
        try:
            notifications = self.client.fetch()
        except (httpx.HTTPError, RelayError) as exc:
            logger.warning("Notification poll failed: %s", exc)
            return None

        top = self.watcher.observe(notifications)
        if top is None:
            return None

        alert = Alert(
            id=top["id"],
            message=top.get("message", ""),
            type=top.get("type"),
            level=alert_level(top.get("type")),
        )
        logger.log(alert.level, "New notification %s: %s", alert.id, alert.message)
        if self.on_alert is not None:
            self.on_alert(alert)
        return alert

    def reset(self) -> None:
        self.watcher.reset()
        self._next_due = None

    def run(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Notification poll crashed; retrying next tick")
            self._sleep(self.interval)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="notification-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
