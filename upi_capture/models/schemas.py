from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _coerce_amount(value):
    # floats come back from the JSON store; go through str to keep 1234.5 exact
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class RawMessage(BaseModel):
    """An incoming SMS, alive only while it is being classified."""

    body: str
    sender: str | None = None
    received_at: datetime = Field(default_factory=utcnow)


class Extraction(BaseModel):
    amount: Decimal = Field(gt=0)
    payee: str = ""


class PaymentRecord(BaseModel):
    """A detected UPI payment.

    Serialized with the field names external readers of the pending queue
    expect: ``amount`` as a number, ``fullMessage`` and ``timestamp`` in
    epoch milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal = Field(gt=0)
    payee: str = ""
    raw_message: str = Field(alias="fullMessage")
    detected_at: datetime = Field(alias="timestamp")

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        return _coerce_amount(value)

    @field_validator("detected_at", mode="before")
    @classmethod
    def _parse_timestamp(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
            except (OverflowError, OSError) as e:
                raise ValueError(f"timestamp {value} is out of range") from e
        return value

    @field_serializer("amount")
    def _dump_amount(self, amount: Decimal) -> float:
        return float(amount)

    @field_serializer("detected_at")
    def _dump_timestamp(self, detected_at: datetime) -> int:
        return to_epoch_millis(detected_at)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class RawSmsEvent(BaseModel):
    """Pass-through event pushed to a live listener for every received SMS."""

    address: str = ""
    body: str
    timestamp: int


class ResumePayload(BaseModel):
    """State carried across an alert tap back into the app."""

    amount: Decimal = Field(gt=0)
    payee: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        return _coerce_amount(value)

    @field_serializer("amount")
    def _dump_amount(self, amount: Decimal) -> float:
        return float(amount)


class WatchResult(BaseModel):
    started: bool
    reason: str | None = None


class SmsDeliveryRequest(BaseModel):
    fragments: list[str] = Field(min_length=1)
    address: str = ""


class SmsDeliveryResponse(BaseModel):
    route: str


class ResumeResponse(BaseModel):
    delivered: bool
