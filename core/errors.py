"""Rejection taxonomy for reading ingestion and retrieval."""
from typing import Any, Dict, Optional

from fastapi import HTTPException


class ReadingError(Exception):
    """Base class for every error reported back to a caller."""

    kind = "ReadingError"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class MissingFieldError(ReadingError):
    kind = "MissingField"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing {field} field.")

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["field"] = self.field
        return detail


class EmptyPayloadError(ReadingError):
    kind = "EmptyPayload"

    def __init__(self, message: str = "Received reading data contains no sensor values."):
        super().__init__(message)


class OutOfRangeError(ReadingError):
    """A present quantity lies outside its physical range."""

    kind = "OutOfRange"

    def __init__(self, field: str, value: float, minimum: float, maximum: float):
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(f"Invalid sensor data: {field}={value} is outside [{minimum}, {maximum}].")

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update({
            "field": self.field,
            "value": self.value,
            "min": self.minimum,
            "max": self.maximum,
        })
        return detail


class StoreError(ReadingError):
    """Persistence layer failure. Never retried."""

    kind = "StoreFailure"
    status_code = 500

    def __init__(self, message: str = "Persistence layer failure.", cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class NotFoundError(ReadingError):
    kind = "NotFound"
    status_code = 404

    def __init__(self, message: str = "No data available for this device."):
        super().__init__(message)


def to_http_exception(error: ReadingError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())
