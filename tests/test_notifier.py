"""Tests for alert sinks"""

import threading

from conftest import RecordingAlertSink
from touch_guard.config import NotificationConfig
from touch_guard.notifier import DispatchingAlertSink, LoggingAlertSink, NotificationAlertSink


class TestNotificationAlertSink:
    def _sink(self, monkeypatch, **config):
        sink = NotificationAlertSink(NotificationConfig(**config), method="log")
        sent = []
        monkeypatch.setattr(sink, "_send_notification", lambda title, message: sent.append((title, message)) or True)
        return sink, sent

    def test_notifies_on_rising_edge_only(self, monkeypatch):
        sink, sent = self._sink(monkeypatch, cooldown_seconds=0)
        sink.on_touch_changed(True)
        sink.on_touch_changed(True)
        assert len(sent) == 1

    def test_cooldown_suppresses_second_touch(self, monkeypatch):
        sink, sent = self._sink(monkeypatch, cooldown_seconds=60)
        for active in (True, False, True):
            sink.on_touch_changed(active)
        assert len(sent) == 1
        assert sink._is_in_cooldown()

    def test_new_touch_after_cooldown_notifies(self, monkeypatch):
        sink, sent = self._sink(monkeypatch, cooldown_seconds=0)
        for active in (True, False, False, True):
            sink.on_touch_changed(active)
        assert len(sent) == 2

    def test_disabled_notifications(self, monkeypatch):
        sink, sent = self._sink(monkeypatch, enabled=False)
        sink.on_touch_changed(True)
        assert sent == []

    def test_log_method_sends_without_subprocess(self):
        sink = NotificationAlertSink(NotificationConfig(), method="log")
        assert sink._send_notification("title", "message")


def test_logging_sink_ignores_repeats(caplog):
    sink = LoggingAlertSink()
    with caplog.at_level("INFO", logger="touch_guard.notifier"):
        sink.on_touch_changed(False)
        sink.on_touch_changed(True)
        sink.on_touch_changed(True)
        sink.on_movement_changed(True)
    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["Touch alert raised", "Movement started"]


class TestDispatchingAlertSink:
    def test_forwards_in_order_on_worker_thread(self):
        threads = []

        class ThreadRecordingSink(RecordingAlertSink):
            def on_touch_changed(self, active):
                threads.append(threading.current_thread().name)
                super().on_touch_changed(active)

        target = ThreadRecordingSink()
        sink = DispatchingAlertSink(target)
        sink.on_movement_changed(True)
        sink.on_touch_changed(True)
        sink.on_touch_changed(False)
        sink.close()

        assert target.events == [("movement", True), ("touch", True), ("touch", False)]
        assert all(name.startswith("alert_dispatch") for name in threads)

    def test_failing_sink_does_not_raise(self):
        class BrokenSink(RecordingAlertSink):
            def on_touch_changed(self, active):
                raise RuntimeError("speaker unplugged")

        sink = DispatchingAlertSink(BrokenSink())
        sink.on_touch_changed(True)
        sink.close()

    def test_calls_after_close_are_dropped(self):
        target = RecordingAlertSink()
        sink = DispatchingAlertSink(target)
        sink.close()
        sink.on_touch_changed(True)
        assert target.events == []
