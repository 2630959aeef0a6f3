import threading
from datetime import datetime
from typing import Iterable

from loguru import logger

from upi_capture.models.schemas import (
    PaymentRecord,
    RawMessage,
    RawSmsEvent,
    to_epoch_millis,
    utcnow,
)
from upi_capture.sms import classifier, extractor


class SmsPipeline:
    """Classification and extraction shared by the live and background paths."""

    def __init__(self):
        self._last_detected: datetime | None = None
        self._lock = threading.Lock()

    def _detection_time(self) -> datetime:
        # wall clock can step backwards; detection times must not
        with self._lock:
            now = utcnow()
            if self._last_detected is not None and now < self._last_detected:
                now = self._last_detected
            self._last_detected = now
            return now

    def accepts(self, message: RawMessage) -> bool:
        return classifier.is_payment(message.body)

    def extract(self, message: RawMessage) -> PaymentRecord | None:
        """Record for a message already accepted as a payment, or None without an amount."""
        extraction = extractor.extract(message.body)
        if extraction is None:
            return None

        record = PaymentRecord(
            amount=extraction.amount,
            payee=extraction.payee,
            raw_message=message.body,
            detected_at=self._detection_time(),
        )
        logger.debug("UPI payment detected: Rs.{} to {!r}", record.amount, record.payee)
        return record

    def process(self, message: RawMessage) -> PaymentRecord | None:
        if not self.accepts(message):
            return None
        return self.extract(message)


def join_fragments(fragments: Iterable[str]) -> str:
    return "".join(fragments)


class SmsDispatcher:
    """Entry point for every SMS the platform hands us.

    A message goes to the live listener when one is attached, otherwise to
    the background ingest. Never both.
    """

    def __init__(self, pipeline, live, ingest):
        self.pipeline = pipeline
        self.live = live
        self.ingest = ingest

    def receive(
        self,
        fragments: list[str],
        address: str = "",
        received_at: datetime | None = None,
    ) -> str:
        received_at = received_at or utcnow()
        body = join_fragments(fragments)
        logger.debug("SMS received from {}: {}", address or "unknown", body)

        if self.live.is_attached():
            message = RawMessage(body=body, sender=address, received_at=received_at)
            event = RawSmsEvent(
                address=address, body=body, timestamp=to_epoch_millis(received_at)
            )
            if self.live.deliver(event, self.pipeline.process(message)):
                return "live"

        outcome = self.ingest.handle(fragments, sender=address, received_at=received_at)
        return outcome.value
