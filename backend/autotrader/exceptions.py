"""
Domain exceptions for the auto-trader.

The core raises these instead of fastapi.HTTPException so indicator,
ledger and controller code stays independent of the web framework.
A global exception handler in main.py translates them into HTTP responses.

Exposure/confidence gate rejections are deliberately NOT exceptions:
they are reported as GateResult values and logged as info entries.
"""


class AppError(Exception):
    """Base application error with an HTTP-equivalent status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Input validation failure (400)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class DataError(AppError):
    """Candle series unusable for computation (422)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=422)


class InsufficientDataError(DataError):
    """Fewer candles than the indicator engine needs."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(f"Not enough data for analysis: {available} candles, need {required}")


class UpstreamError(AppError):
    """An upstream dependency (exchange, AI provider) failed (502)."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code)


class ExchangeUnavailableError(UpstreamError):
    """Exchange API unavailable or rejected the request (503)."""

    def __init__(self, message: str = "Exchange service unavailable"):
        super().__init__(message, status_code=503)


class OracleUnavailableError(UpstreamError):
    """No usable decision could be produced, not even the fallback (503)."""

    def __init__(self, message: str = "Decision oracle unavailable"):
        super().__init__(message, status_code=503)


class PersistenceError(AppError):
    """State or ledger storage failed (500)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)
