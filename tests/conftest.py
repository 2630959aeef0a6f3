"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Keep the module-level store in upi_capture.deps out of the working tree
_TEST_DIR = tempfile.mkdtemp(prefix="upi-capture-tests-")
os.environ["DB_PATH"] = os.path.join(_TEST_DIR, "pending_payments.json")
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_CHAT_ID"] = ""
os.environ["SMS_PERMISSION_GRANTED"] = "true"

import pytest  # noqa: E402

from upi_capture.db.repository import PendingPaymentRepository  # noqa: E402
from upi_capture.sms.ingest import BackgroundIngestSource  # noqa: E402
from upi_capture.sms.live import LiveEventSource, LiveListener  # noqa: E402
from upi_capture.sms.pipeline import SmsDispatcher, SmsPipeline  # noqa: E402


class FakeNotifier:
    def __init__(self):
        self.alerts = []

    def alert(self, title, body, payload):
        self.alerts.append((title, body, payload))


class RecordingListener(LiveListener):
    def __init__(self):
        self.events = []
        self.payments = []
        self.resumed = []

    def on_raw_event(self, event):
        self.events.append(event)

    def on_payment(self, record):
        self.payments.append(record)

    def on_resume(self, payload):
        self.resumed.append(payload)


@pytest.fixture
def repo(tmp_path):
    repository = PendingPaymentRepository(str(tmp_path / "pending.json"))
    yield repository
    repository.close()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def pipeline() -> SmsPipeline:
    return SmsPipeline()


@pytest.fixture
def live() -> LiveEventSource:
    return LiveEventSource()


@pytest.fixture
def ingest(pipeline, repo, notifier) -> BackgroundIngestSource:
    return BackgroundIngestSource(pipeline, repo, notifier, "New Payment")


@pytest.fixture
def dispatcher(pipeline, live, ingest) -> SmsDispatcher:
    return SmsDispatcher(pipeline, live, ingest)
