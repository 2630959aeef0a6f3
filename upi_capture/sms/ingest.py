from datetime import datetime
from enum import Enum

from loguru import logger

from upi_capture.models.schemas import RawMessage, utcnow
from upi_capture.notifier import build_alert


class IngestOutcome(str, Enum):
    REJECTED = "rejected"
    NO_AMOUNT = "no_amount"
    STORE_FAILED = "store_failed"
    STORED = "stored"
    ALERTED = "alerted"
    FAILED = "failed"


class BackgroundIngestSource:
    """Handles SMS delivered while no live listener is attached.

    Received -> classified -> extracted -> stored -> alerted. The alert is
    only raised once the record is on disk.
    """

    def __init__(self, pipeline, repo, notifier, alert_title: str):
        self.pipeline = pipeline
        self.repo = repo
        self.notifier = notifier
        self.alert_title = alert_title

    def handle(
        self,
        fragments: list[str],
        sender: str | None = None,
        received_at: datetime | None = None,
    ) -> IngestOutcome:
        try:
            return self._ingest(
                RawMessage(
                    body="".join(fragments),
                    sender=sender,
                    received_at=received_at or utcnow(),
                )
            )
        except Exception:
            logger.exception("Failed to process SMS in background")
            return IngestOutcome.FAILED

    def _ingest(self, message: RawMessage) -> IngestOutcome:
        if not self.pipeline.accepts(message):
            return IngestOutcome.REJECTED

        record = self.pipeline.extract(message)
        if record is None:
            return IngestOutcome.NO_AMOUNT

        logger.info("Background UPI payment detected: Rs.{} to {!r}", record.amount, record.payee)
        if not self.repo.append(record):
            return IngestOutcome.STORE_FAILED

        try:
            self.notifier.alert(*build_alert(record, self.alert_title))
        except Exception:
            logger.exception("Payment stored but alert failed")
            return IngestOutcome.STORED
        return IngestOutcome.ALERTED
