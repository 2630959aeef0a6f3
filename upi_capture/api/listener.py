import asyncio
from concurrent.futures import Future

from fastapi import WebSocket
from loguru import logger

from upi_capture.models.schemas import PaymentRecord, RawSmsEvent, ResumePayload
from upi_capture.sms.live import LiveListener


class WebSocketListener(LiveListener):
    """Pushes live SMS events to a connected client.

    Delivery happens on worker threads, so frames are scheduled onto the
    event loop that owns the socket and not awaited.
    """

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop):
        self.websocket = websocket
        self.loop = loop

    def _push(self, kind: str, data: dict) -> None:
        future = asyncio.run_coroutine_threadsafe(
            self.websocket.send_json({"type": kind, "data": data}), self.loop
        )
        future.add_done_callback(_log_send_failure)

    def on_raw_event(self, event: RawSmsEvent) -> None:
        self._push("raw_event", event.model_dump())

    def on_payment(self, record: PaymentRecord) -> None:
        self._push("payment", record.to_document())

    def on_resume(self, payload: ResumePayload) -> None:
        self._push("resume", payload.model_dump())


def _log_send_failure(future: Future) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.warning("Dropped live event: {}", future.exception())
