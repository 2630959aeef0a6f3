import threading

from loguru import logger

from upi_capture.exceptions import RegistrationError
from upi_capture.models.schemas import PaymentRecord, RawSmsEvent, ResumePayload


class LiveListener:
    """Receives SMS events while the app is in the foreground.

    Subclasses override the hooks they care about; ``on_raw_event`` is the
    only one every listener must provide.
    """

    def on_raw_event(self, event: RawSmsEvent) -> None:
        raise NotImplementedError

    def on_payment(self, record: PaymentRecord) -> None:
        pass

    def on_resume(self, payload: ResumePayload) -> None:
        pass


class LiveEventSource:
    """Owns the "is a listener attached" state for the live delivery path.

    Delivery snapshots the listener under the lock and hands off outside it,
    so a concurrent ``detach`` never splits one delivery across listeners.
    """

    def __init__(self):
        self._listener: LiveListener | None = None
        self._lock = threading.Lock()

    def attach(self, listener: LiveListener) -> None:
        if not callable(getattr(listener, "on_raw_event", None)):
            raise RegistrationError(
                f"{type(listener).__name__} does not implement on_raw_event"
            )
        with self._lock:
            self._listener = listener
        logger.info("Live listener attached: {}", type(listener).__name__)

    def detach(self, listener: LiveListener | None = None) -> bool:
        with self._lock:
            if self._listener is None:
                return False
            if listener is not None and listener is not self._listener:
                return False
            self._listener = None
        logger.info("Live listener detached")
        return True

    def is_attached(self) -> bool:
        with self._lock:
            return self._listener is not None

    def _current(self) -> LiveListener | None:
        with self._lock:
            return self._listener

    def deliver(self, event: RawSmsEvent, record: PaymentRecord | None = None) -> bool:
        """Hand an event to the attached listener. Returns False if none was attached."""
        listener = self._current()
        if listener is None:
            return False

        try:
            listener.on_raw_event(event)
            on_payment = getattr(listener, "on_payment", None)
            if record is not None and on_payment is not None:
                on_payment(record)
        except Exception:
            logger.exception("Live listener failed to handle SMS from {}", event.address)
        return True

    def resume(self, payload: ResumePayload) -> bool:
        listener = self._current()
        if listener is None:
            logger.info("No live listener for resumed payment of {}", payload.amount)
            return False

        on_resume = getattr(listener, "on_resume", None)
        if on_resume is None:
            return False
        try:
            on_resume(payload)
        except Exception:
            logger.exception("Live listener failed to handle resumed payment")
        return True
