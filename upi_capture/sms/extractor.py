import re
from decimal import Decimal, InvalidOperation

from loguru import logger

from upi_capture.models.schemas import Extraction

_NUMBER = r"([0-9,]+(?:\.[0-9]+)?)"
_CURRENCY = r"(?:rs\.?|inr)"

# Order matters: the first pattern that matches decides the amount.
AMOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?:sent|paid)\s+{_CURRENCY}\s*{_NUMBER}", re.IGNORECASE),
    re.compile(rf"{_CURRENCY}\s*{_NUMBER}\s*(?:debited|has been)", re.IGNORECASE),
    re.compile(rf"debited.*?{_CURRENCY}\s*{_NUMBER}", re.IGNORECASE),
)

PAYEE_PATTERN = re.compile(
    r"\b(?:to|at)\s+([A-Za-z0-9][A-Za-z0-9.\s@\-_]{0,30}?)(?:\s+on|\s+ref|\s*\.|$)",
    re.IGNORECASE,
)


def parse_amount(text: str) -> Decimal | None:
    """Parse ``1,234.50`` style numbers; anything non-positive is rejected."""
    try:
        amount = Decimal(text.replace(",", ""))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def find_amount(body: str) -> Decimal | None:
    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(body)
        if match:
            # no fall-through once a pattern has matched
            return parse_amount(match.group(1))
    return None


def find_payee(body: str) -> str:
    match = PAYEE_PATTERN.search(body)
    if not match:
        return ""
    return match.group(1).strip()


def extract(body: str) -> Extraction | None:
    amount = find_amount(body)
    if amount is None:
        logger.debug("No usable amount in message")
        return None
    return Extraction(amount=amount, payee=find_payee(body))
