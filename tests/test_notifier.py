"""Unit tests for alert formatting and the resume payload."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from upi_capture.config import Settings
from upi_capture.deps import build_notifier
from upi_capture.models.schemas import PaymentRecord, ResumePayload
from upi_capture.notifier import (
    LogNotifier,
    TelegramNotifier,
    build_alert,
    format_inr,
    parse_resume_callback,
    resume_callback_data,
)


def _record(amount: str, payee: str) -> PaymentRecord:
    return PaymentRecord(
        amount=Decimal(amount),
        payee=payee,
        raw_message="",
        detected_at=datetime.now(timezone.utc),
    )


def test_format_inr() -> None:
    assert format_inr(Decimal("1500")) == "₹1,500"
    assert format_inr(Decimal("1234.50")) == "₹1,234.50"
    assert format_inr(Decimal("0.5")) == "₹0.50"


def test_alert_with_payee() -> None:
    title, body, payload = build_alert(_record("1500", "Ramesh Kumar"), "Payment")

    assert title == "Payment"
    assert body == "Paid ₹1,500 to Ramesh Kumar. Tap to add as a shared expense."
    assert payload == ResumePayload(amount=Decimal("1500"), payee="Ramesh Kumar")


def test_alert_omits_empty_payee() -> None:
    _, body, payload = build_alert(_record("250", ""), "Payment")

    assert body == "Paid ₹250. Tap to add as a shared expense."
    assert payload.payee == ""


def test_resume_callback_round_trip() -> None:
    payload = ResumePayload(amount=Decimal("349.00"), payee="merchant@okaxis")

    data = resume_callback_data(payload)

    assert data == "upi:349.00:merchant@okaxis"
    assert parse_resume_callback(data) == payload


def test_resume_callback_without_payee() -> None:
    parsed = parse_resume_callback("upi:250:")

    assert parsed.amount == Decimal("250")
    assert parsed.payee == ""


def test_malformed_resume_callback() -> None:
    assert parse_resume_callback(None) is None
    assert parse_resume_callback("choose_1") is None
    assert parse_resume_callback("upi:abc:Asha") is None


def test_callback_data_fits_telegram_limit() -> None:
    payload = ResumePayload(amount=Decimal("123456789.99"), payee="A" * 31)
    assert len(resume_callback_data(payload)) <= 64


def test_log_notifier_accepts_alert() -> None:
    LogNotifier().alert("Payment", "Paid ₹10.", ResumePayload(amount=Decimal("10")))


def test_build_notifier_needs_token_and_chat() -> None:
    assert isinstance(build_notifier(Settings(telegram_bot_token="", telegram_chat_id="")), LogNotifier)
    assert isinstance(build_notifier(Settings(telegram_bot_token="t", telegram_chat_id="")), LogNotifier)
    assert isinstance(
        build_notifier(Settings(telegram_bot_token="t", telegram_chat_id="42")), TelegramNotifier
    )


def test_callback_data_limit_is_in_bytes() -> None:
    # "ſ" matches [A-Za-z] under re.IGNORECASE and takes two bytes in UTF-8
    payload = ResumePayload(amount=Decimal("1500"), payee="ſ" * 31)

    data = resume_callback_data(payload)

    assert len(data.encode("utf-8")) <= 64
    assert data.startswith("upi:1500:ſ")


def test_telegram_alert_on_running_loop_keeps_task_until_sent() -> None:
    notifier = TelegramNotifier("token", "42")
    sent = []

    async def fake_send(title, body, payload):
        await asyncio.sleep(0)
        sent.append(body)

    notifier.send = fake_send

    async def run() -> None:
        notifier.alert("Payment", "Paid ₹10.", ResumePayload(amount=Decimal("10")))
        assert len(notifier._pending) == 1
        while notifier._pending:
            await asyncio.sleep(0)

    asyncio.run(run())

    assert sent == ["Paid ₹10."]


def test_telegram_alert_failure_on_running_loop_is_logged() -> None:
    notifier = TelegramNotifier("token", "42")

    async def failing_send(title, body, payload):
        raise RuntimeError("telegram down")

    notifier.send = failing_send

    async def run() -> None:
        notifier.alert("Payment", "Paid ₹10.", ResumePayload(amount=Decimal("10")))
        while notifier._pending:
            await asyncio.sleep(0)

    asyncio.run(run())

    assert notifier._pending == set()
