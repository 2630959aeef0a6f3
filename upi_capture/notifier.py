import asyncio
from decimal import Decimal
from typing import Protocol

from loguru import logger
from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup

from upi_capture.models.schemas import PaymentRecord, ResumePayload

RESUME_PREFIX = "upi:"
# Telegram rejects callback data longer than this
MAX_CALLBACK_DATA = 64


class Notifier(Protocol):
    def alert(self, title: str, body: str, payload: ResumePayload) -> None:
        ...


def format_inr(amount: Decimal | float) -> str:
    """Format amount in INR style."""
    if amount == int(amount):
        return f"₹{int(amount):,}"
    return f"₹{amount:,.2f}"


def build_alert(record: PaymentRecord, title: str) -> tuple[str, str, ResumePayload]:
    """Title, body and resume payload for a detected payment."""
    payee_text = f" to {record.payee}" if record.payee else ""
    body = f"Paid {format_inr(record.amount)}{payee_text}. Tap to add as a shared expense."
    return title, body, ResumePayload(amount=record.amount, payee=record.payee)


def resume_callback_data(payload: ResumePayload) -> str:
    data = f"{RESUME_PREFIX}{payload.amount}:{payload.payee}".encode("utf-8")
    # the limit is in bytes; drop any character cut in half
    return data[:MAX_CALLBACK_DATA].decode("utf-8", errors="ignore")


def parse_resume_callback(data: str | None) -> ResumePayload | None:
    if not data or not data.startswith(RESUME_PREFIX):
        return None
    amount, _, payee = data[len(RESUME_PREFIX):].partition(":")
    try:
        return ResumePayload(amount=amount, payee=payee)
    except ValueError:
        logger.warning("Ignoring malformed resume callback: {}", data)
        return None


class LogNotifier:
    """Used when no Telegram chat is configured."""

    def alert(self, title: str, body: str, payload: ResumePayload) -> None:
        logger.info("{} {}", title, body)


class TelegramNotifier:
    def __init__(self, token: str, chat_id: str):
        self._token = token
        self._chat_id = chat_id
        # the loop only keeps weak references to tasks
        self._pending: set[asyncio.Task] = set()

    async def send(self, title: str, body: str, payload: ResumePayload) -> None:
        keyboard = InlineKeyboardMarkup(
            [[InlineKeyboardButton("Add as shared expense", callback_data=resume_callback_data(payload))]]
        )
        async with Bot(self._token) as bot:
            await bot.send_message(
                chat_id=self._chat_id,
                text=f"{title}\n{body}",
                reply_markup=keyboard,
            )
        logger.info("Payment alert sent to chat {}", self._chat_id)

    def alert(self, title: str, body: str, payload: ResumePayload) -> None:
        coro = self.send(title, body, payload)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # called from a worker thread, e.g. a sync FastAPI route
            asyncio.run(coro)
            return

        # On a running loop the send is scheduled, not awaited; failures are logged.
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._finish)

    def _finish(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error("Failed to send payment alert")
