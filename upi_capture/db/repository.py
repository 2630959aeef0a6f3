import threading

from loguru import logger
from tinydb import TinyDB

from upi_capture.models.schemas import PaymentRecord


class PendingPaymentRepository:
    """Durable queue of detected payments waiting to be turned into expenses.

    Backed by a single TinyDB table. TinyDB's JSON storage flushes and fsyncs
    on every write, so a record is on disk once ``append`` returns ``True``.
    Read-modify-write operations share one lock.
    """

    def __init__(
        self,
        db_path: str = "pending_payments.json",
        namespace: str = "pending_payments",
    ):
        self.db = TinyDB(db_path)
        self.namespace = namespace
        self.table = self.db.table(namespace)
        self._lock = threading.Lock()

    def append(self, record: PaymentRecord) -> bool:
        with self._lock:
            try:
                self.table.insert(record.to_document())
            except Exception:
                logger.exception("Failed to save pending payment of {}", record.amount)
                return False
        return True

    def list(self) -> list[PaymentRecord]:
        with self._lock:
            try:
                docs = self.table.all()
            except Exception:
                logger.exception("Pending payment store is unreadable, treating as empty")
                return []

        records = []
        for doc in docs:
            try:
                records.append(PaymentRecord.model_validate(dict(doc)))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping malformed pending payment #{}: {}", doc.doc_id, e)
        return records

    def clear(self) -> None:
        with self._lock:
            try:
                self.table.truncate()
            except Exception:
                logger.exception("Pending payment store is unreadable, resetting it")
                self.db.drop_tables()
                self.table = self.db.table(self.namespace)

    def close(self) -> None:
        self.db.close()
