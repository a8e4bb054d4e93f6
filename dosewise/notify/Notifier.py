"""
System notification collaborators.

Notifications are best-effort: permission-gated, never retried, and a
failure is logged and swallowed.
"""

import shutil
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import List, Tuple

from dosewise.utils.AppLogging import logger


class BaseNotifier(ABC):
    """Sends a user-visible notification."""

    def __init__(self, permission_granted: bool = True):
        self.permission_granted = permission_granted

    def notify(self, title: str, body: str) -> None:
        if not self.permission_granted:
            logger.debug(f"[Notifier] Permission not granted, dropping: {title}")
            return
        try:
            self._send(title, body)
        except Exception as e:
            logger.warning(f"[Notifier] Notification failed (ignored): {e}")

    @abstractmethod
    def _send(self, title: str, body: str) -> None:
        pass


class LogNotifier(BaseNotifier):
    """Headless notifier: writes the notification to the application log."""

    def _send(self, title: str, body: str) -> None:
        logger.info(f"[Notification] {title}: {body}")


class RecordingNotifier(BaseNotifier):
    """Keeps sent notifications in memory for inspection in tests."""

    def __init__(self, permission_granted: bool = True):
        super().__init__(permission_granted)
        self.sent: List[Tuple[str, str]] = []

    def _send(self, title: str, body: str) -> None:
        self.sent.append((title, body))


class DesktopNotifier(BaseNotifier):
    """
    Native desktop notification through the platform's command-line tool:
    notify-send on Linux, osascript on macOS, a PowerShell toast on Windows.
    """

    _WINDOWS_TOAST = '''
[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, ContentType = WindowsRuntime]
$xml = [Windows.UI.Notifications.ToastNotificationManager]::GetTemplateContent([Windows.UI.Notifications.ToastTemplateType]::ToastText02)
$txt = $xml.GetElementsByTagName("text")
$txt.Item(0).AppendChild($xml.CreateTextNode("{0}")) | Out-Null
$txt.Item(1).AppendChild($xml.CreateTextNode("{1}")) | Out-Null
$toast = [Windows.UI.Notifications.ToastNotification]::new($xml)
[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier("DoseWise").Show($toast)
'''

    def _send(self, title: str, body: str) -> None:
        if sys.platform == "darwin":
            script = 'display notification "{}" with title "{}"'.format(body, title)
            subprocess.Popen(['osascript', '-e', script])
        elif sys.platform.startswith("linux"):
            if shutil.which("notify-send") is None:
                logger.info(f"[Notification] {title}: {body} (notify-send not available)")
                return
            subprocess.Popen(['notify-send', title, body])
        elif sys.platform.startswith("win"):
            subprocess.Popen(
                ["powershell", "-NoProfile", "-Command", self._WINDOWS_TOAST.format(title, body)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        else:
            logger.info(f"[Notification] {title}: {body}")
