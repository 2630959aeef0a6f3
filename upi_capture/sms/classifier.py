PAYMENT_KEYWORDS = ("debited", "sent", "paid", "upi")


def is_payment(body: str) -> bool:
    """Cheap keyword filter; the amount patterns in the extractor are the real gate."""
    lowered = body.lower()
    return any(keyword in lowered for keyword in PAYMENT_KEYWORDS)
