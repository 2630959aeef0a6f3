from typing import Protocol

from loguru import logger

from upi_capture.exceptions import RegistrationError
from upi_capture.models.schemas import WatchResult
from upi_capture.sms.live import LiveEventSource, LiveListener


class PermissionGate(Protocol):
    def is_granted(self) -> bool:
        ...

    def request(self) -> bool:
        ...


class SettingsPermissionGate:
    """Permission gate driven by the ``SMS_PERMISSION_GRANTED`` setting."""

    def __init__(self, granted: bool):
        self.granted = granted

    def is_granted(self) -> bool:
        return self.granted

    def request(self) -> bool:
        return self.granted


class SmsWatcher:
    def __init__(self, live: LiveEventSource, gate: PermissionGate):
        self.live = live
        self.gate = gate

    def start_watching(self, listener: LiveListener) -> WatchResult:
        if not self.gate.is_granted() and not self.gate.request():
            logger.warning("SMS permission was denied")
            return WatchResult(started=False, reason="permission_denied")

        if self.live.is_attached():
            logger.debug("SMS watcher already running")
            return WatchResult(started=True, reason="already_running")

        try:
            self.live.attach(listener)
        except RegistrationError:
            raise
        except Exception as e:
            raise RegistrationError(f"Failed to start SMS watching: {e}") from e
        return WatchResult(started=True)

    def stop_watching(self, listener: LiveListener | None = None) -> dict:
        self.live.detach(listener)
        return {"stopped": True}

    def check_permissions(self) -> dict:
        return {"granted": self.gate.is_granted()}
