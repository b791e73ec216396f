"""
Error taxonomy shared by services and routers.

Routers do not translate these one by one; main.py maps each class to an
HTTP status through a single exception handler.
"""


class PosError(Exception):
    """Base error carrying a human message and a details dict."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(PosError):
    """Bad input shape or range (negative discount, empty cart, ...)."""
    status_code = 400


class NotFound(PosError):
    """Referenced order/product/printer/payment does not exist."""
    status_code = 404


class InvalidTransition(PosError):
    """Illegal status change on the order or payment axis."""
    status_code = 409

    def __init__(self, current: str, requested: str, message: str | None = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot change status from {current} to {requested}",
            {"current": current, "requested": requested},
        )


class InvalidSignature(PosError):
    status_code = 400


class GatewayError(PosError):
    """Payment gateway call failed; `cause` holds the underlying error."""
    status_code = 502

    def __init__(self, message: str, cause: BaseException | None = None, details: dict | None = None):
        self.cause = cause
        super().__init__(message, details)


class PrinterError(PosError):
    status_code = 502


class PrinterConnectionFailed(PrinterError):
    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message, {"cause": repr(cause)} if cause else None)


class PrinterTimeout(PrinterError):
    pass


class UnsupportedConnection(PrinterError):
    status_code = 400
