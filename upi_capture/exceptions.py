class UpiCaptureError(Exception):
    """Base class for errors raised by the capture pipeline."""


class RegistrationError(UpiCaptureError):
    """A live listener could not be attached to the incoming SMS stream."""
