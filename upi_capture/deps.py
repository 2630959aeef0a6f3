from upi_capture.config import Settings, get_settings
from upi_capture.db.repository import PendingPaymentRepository
from upi_capture.notifier import LogNotifier, TelegramNotifier
from upi_capture.sms.ingest import BackgroundIngestSource
from upi_capture.sms.live import LiveEventSource
from upi_capture.sms.pipeline import SmsDispatcher, SmsPipeline
from upi_capture.sms.watcher import SettingsPermissionGate, SmsWatcher


def build_notifier(settings: Settings):
    if settings.telegram_bot_token and settings.telegram_chat_id:
        return TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
    return LogNotifier()


settings = get_settings()

repo = PendingPaymentRepository(settings.db_path, namespace=settings.pending_namespace)
pipeline = SmsPipeline()
live = LiveEventSource()
ingest = BackgroundIngestSource(pipeline, repo, build_notifier(settings), settings.alert_title)
dispatcher = SmsDispatcher(pipeline, live, ingest)
watcher = SmsWatcher(live, SettingsPermissionGate(settings.sms_permission_granted))
