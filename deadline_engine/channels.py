"""Alert channels: the tone and native notification capabilities.

Every method here is allowed to fail; callers treat a failure as "this
channel is unavailable" and carry on with the rest of the alert.
"""

from __future__ import annotations

import sys
from typing import Protocol

from plyer import notification as plyer_notification
from plyer.utils import platform as plyer_platform

from deadline_engine.logger import logger

PERMISSION_DEFAULT = "default"
PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"

_NATIVE_PLATFORMS = ("win", "macosx", "linux")


class AlertChannel(Protocol):
    permission: str

    def request_permission(self) -> str: ...

    def play_tone(self) -> None: ...

    def notify(self, title: str, body: str) -> None: ...


class DesktopAlertChannel:
    """Native notifications through plyer, tone through the system beep."""

    def __init__(self, app_name: str = "Deadline Engine", timeout: int = 10) -> None:
        self.app_name = app_name
        self.timeout = timeout
        self.permission = PERMISSION_DEFAULT

    def request_permission(self) -> str:
        if self.permission != PERMISSION_DEFAULT:
            return self.permission
        supported = any(plyer_platform == name for name in _NATIVE_PLATFORMS)
        self.permission = PERMISSION_GRANTED if supported else PERMISSION_DENIED
        logger.info(f"Native notification permission: {self.permission}")
        return self.permission

    def play_tone(self) -> None:
        if sys.platform == "win32":
            import winsound

            winsound.MessageBeep()
            return
        sys.stdout.write("\a")
        sys.stdout.flush()

    def notify(self, title: str, body: str) -> None:
        try:
            plyer_notification.notify(title=title, message=body, app_name=self.app_name, timeout=self.timeout)
        except NotImplementedError:
            # no backend on this machine; stop trying for the session
            self.permission = PERMISSION_DENIED
            raise


class NullAlertChannel:
    """Channel with no tone and no native notifications."""

    permission = PERMISSION_DENIED

    def request_permission(self) -> str:
        return self.permission

    def play_tone(self) -> None:
        return None

    def notify(self, title: str, body: str) -> None:
        return None
