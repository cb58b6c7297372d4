"""Alert sinks: desktop notifications, logging, and off-thread dispatch."""

import logging
import platform
import subprocess
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Optional

from .config import NotificationConfig
from .interfaces import AlertSink

logger = logging.getLogger(__name__)


class NotificationAlertSink:
    """Shows a desktop notification when a face touch starts.

    Notifications are rate limited by ``cooldown_seconds`` independently of
    the pipeline's touch cooloff, so that a burst of short touches produces a
    single notification.
    """

    def __init__(self, config: NotificationConfig, method: Optional[str] = None):
        self.config = config
        self._last_notification_time: Optional[datetime] = None
        self._touch_active = False
        self.system = platform.system()
        self._working_method = method or self._detect_notification_method()
        logger.debug(f"Notification method: {self._working_method or 'log only'}")

    def _detect_notification_method(self) -> Optional[str]:
        """Pick osascript, notify-send or plyer, whichever works here."""
        if self.system == "Darwin":
            try:
                subprocess.run(["osascript", "-e", ""], capture_output=True, timeout=1)
                return "osascript"
            except (OSError, subprocess.SubprocessError):
                pass

        elif self.system == "Linux":
            try:
                subprocess.run(["notify-send", "--version"], capture_output=True, timeout=1)
                return "notify-send"
            except (OSError, subprocess.SubprocessError):
                pass

        try:
            from plyer import notification  # noqa: F401

            return "plyer"
        except ImportError:
            return None

    def _is_in_cooldown(self) -> bool:
        """True while the last notification is younger than the cooldown."""
        if not self._last_notification_time:
            return False
        return datetime.now() - self._last_notification_time < timedelta(seconds=self.config.cooldown_seconds)

    def _send_notification(self, title: str, message: str) -> bool:
        if not self._working_method or self._working_method == "log":
            logger.info(f"{title}: {message}")
            return True

        try:
            if self._working_method == "osascript":
                script = f'display notification "{message}" with title "{title}"'
                result = subprocess.run(["osascript", "-e", script], capture_output=True, text=True, timeout=5)
                if result.returncode != 0 and "not allowed" in result.stderr:
                    logger.warning("Notification permission required, grant it in System Settings > Notifications")

            elif self._working_method == "notify-send":
                subprocess.run(
                    ["notify-send", "--expire-time", str(self.config.duration_seconds * 1000), title, message],
                    capture_output=True,
                    timeout=5,
                )

            elif self._working_method == "plyer":
                from plyer import notification

                notification.notify(title=title, message=message, timeout=self.config.duration_seconds)

            return True

        except Exception as e:
            logger.warning(f"Notification failed ({self._working_method}): {e}")
            logger.info(f"{title}: {message}")
            return False

    def on_touch_changed(self, active: bool) -> None:
        rising = active and not self._touch_active
        self._touch_active = active
        if not rising or not self.config.enabled or self._is_in_cooldown():
            return
        if self._send_notification(self.config.title, self.config.message):
            self._last_notification_time = datetime.now()

    def on_movement_changed(self, active: bool) -> None:
        pass


class LoggingAlertSink:
    """Logs alert level changes, ignoring repeats of the current level."""

    def __init__(self) -> None:
        self._moving = False
        self._touching = False

    def on_movement_changed(self, active: bool) -> None:
        if active != self._moving:
            self._moving = active
            logger.info("Movement started" if active else "Movement settled")

    def on_touch_changed(self, active: bool) -> None:
        if active != self._touching:
            self._touching = active
            logger.info("Touch alert raised" if active else "Touch alert cleared")


class DispatchingAlertSink:
    """Forwards notifications to another sink on a dedicated worker thread.

    Calls return immediately; the wrapped sink sees them in submission order.
    """

    def __init__(self, sink: AlertSink):
        self.sink = sink
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="alert_dispatch")

    def on_movement_changed(self, active: bool) -> None:
        self._submit(self.sink.on_movement_changed, active)

    def on_touch_changed(self, active: bool) -> None:
        self._submit(self.sink.on_touch_changed, active)

    def _submit(self, fn, active: bool) -> None:
        try:
            future = self._executor.submit(fn, active)
        except RuntimeError:
            logger.debug("Alert dispatcher is shut down, dropping notification")
            return
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(f"Alert sink failed: {error}")

    def close(self) -> None:
        """Deliver pending notifications and stop the worker."""
        self._executor.shutdown(wait=True)
