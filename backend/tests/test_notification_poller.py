"""Client-side poller: first-poll suppression, new-id alerts, failure tolerance."""

import logging
import threading

import httpx
import pytest

from rdr_finance.notification_poller import (
    NotificationPoller,
    NotificationWatcher,
    RelayClient,
    alert_level,
)


class FakeFeed:
    """Serves queued responses to an httpx.MockTransport."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0
        self.called = threading.Event()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.called.set()
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.path == "/api/notifications"
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"error": "boom"})
        if isinstance(item, str):
            return httpx.Response(200, text=item, headers={"content-type": "text/html"})
        return httpx.Response(200, json={"notifications": item})


def make_poller(feed, **kwargs):
    client = RelayClient("http://relay.test", "tok", timeout=1.0, transport=httpx.MockTransport(feed))
    return NotificationPoller(client, **kwargs)


def note(id, type="info", message=None):
    return {"id": id, "type": type, "message": message or f"message {id}"}


def run_until(feed, polls, **kwargs):
    """Run the blocking loop on a fake clock until the feed has served ``polls`` requests."""
    now = [0.0]

    def sleep(seconds):
        now[0] += seconds
        if feed.calls >= polls:
            poller.stop()

    poller = make_poller(feed, interval=10.0, clock=lambda: now[0], sleep=sleep, **kwargs)
    poller.run()
    return poller


def test_watcher_first_poll_never_alerts():
    watcher = NotificationWatcher()
    assert watcher.observe([note(5)]) is None
    assert watcher.last_seen_id == 5
    assert watcher.first_poll is False

    assert watcher.observe([note(5)]) is None
    assert watcher.observe([note(6), note(5)])["id"] == 6

    watcher.reset()
    assert watcher.first_poll is True
    assert watcher.observe([note(7)]) is None


def test_three_polls_alert_once():
    alerts = []
    poller = make_poller(FakeFeed([note(5)], [note(5)], [note(6, "success"), note(5)]), on_alert=alerts.append)

    assert poller.poll_once() is None
    assert poller.poll_once() is None
    alert = poller.poll_once()

    assert alert.id == 6
    assert alert.level == logging.INFO
    assert alerts == [alert]


def test_empty_feed_then_first_message_alerts():
    poller = make_poller(FakeFeed([], [note(1, "warning")]))
    assert poller.poll_once() is None
    assert poller.poll_once().level == logging.WARNING


def test_network_errors_are_swallowed(caplog):
    feed = FakeFeed(
        httpx.ConnectError("connection refused"),
        500,
        [note(5)],
        [note(8, "error")],
    )
    poller = make_poller(feed)

    with caplog.at_level(logging.WARNING, logger="rdr_finance.notification_poller"):
        assert poller.poll_once() is None
        assert poller.poll_once() is None
    assert "Notification poll failed" in caplog.text

    # failures do not consume the first-poll suppression
    assert poller.poll_once() is None
    assert poller.poll_once().level == logging.ERROR


def test_tick_respects_interval():
    feed = FakeFeed([note(1)])
    poller = make_poller(feed, interval=10.0, clock=lambda: 0.0)

    poller.tick(0.0)
    poller.tick(5.0)
    poller.tick(9.9)
    assert feed.calls == 1
    poller.tick(10.0)
    assert feed.calls == 2
    poller.tick()  # injected clock says 0.0, not due
    assert feed.calls == 2


def test_unknown_type_is_rejected():
    with pytest.raises(ValueError):
        alert_level("urgent")

    poller = make_poller(FakeFeed([note(1)], [note(2, "urgent")]))
    poller.poll_once()
    with pytest.raises(ValueError):
        poller.poll_once()


def test_background_thread_starts_and_stops():
    feed = FakeFeed([note(1)])
    poller = make_poller(feed, interval=0.01)
    poller.start()
    try:
        assert feed.called.wait(2.0)
    finally:
        poller.stop(timeout=2.0)
    assert poller._thread is None


def test_malformed_replies_are_skipped(caplog):
    feed = FakeFeed(
        "<html>gateway</html>",
        [{"message": "no id"}],
        [note(5)],
        [note(6)],
    )
    poller = make_poller(feed)

    with caplog.at_level(logging.WARNING, logger="rdr_finance.notification_poller"):
        assert poller.poll_once() is None
        assert poller.poll_once() is None
    assert "non-JSON body" in caplog.text
    assert "without an id" in caplog.text

    assert poller.poll_once() is None
    assert poller.poll_once().id == 6


def test_run_keeps_polling_after_a_gateway_page():
    alerts = []
    feed = FakeFeed("<html>gateway</html>", [note(1)], [note(2, "success"), note(1)])

    poller = run_until(feed, 3, on_alert=alerts.append)

    assert feed.calls == 3
    assert [a.id for a in alerts] == [2]
    assert poller.watcher.last_seen_id == 2


def test_run_survives_unknown_type(caplog):
    alerts = []
    feed = FakeFeed([note(1)], [note(2, "urgent")], [note(3, "warning"), note(2, "urgent")])

    with caplog.at_level(logging.ERROR, logger="rdr_finance.notification_poller"):
        run_until(feed, 3, on_alert=alerts.append)

    assert feed.calls == 3
    assert [a.id for a in alerts] == [3]
    assert "Notification poll crashed" in caplog.text
