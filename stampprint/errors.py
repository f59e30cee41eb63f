"""Exceptions raised by the StampPrint agent."""


class StampPrintError(Exception):
    """Base class for agent errors."""

    pass


class AuthError(StampPrintError):
    """Login endpoint did not yield a token."""

    pass


class DownloadError(StampPrintError):
    """Document download failed (network, HTTP status or not a PDF)."""

    pass


class PayloadDecodeError(StampPrintError):
    """Inline command payload arrived in an unrecognized shape."""

    pass


class MarkError(StampPrintError):
    """Document could not be stamped (no pages or unreadable)."""

    pass


class PrintError(StampPrintError):
    """Error during printing operation."""

    pass


class InvalidOrderError(StampPrintError):
    """Order in a poll response is missing or has malformed fields."""

    def __init__(self, message: str, order_id: str | None = None):
        super().__init__(message)
        self.order_id = order_id
