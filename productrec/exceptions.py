"""Custom exceptions for ProductRec.

Defines specific exception types for better error handling and reporting.
The status codes are used by the API layer when translating errors into
HTTP responses.
"""

from typing import Any, Dict, Optional


class ProductRecException(Exception):
    """Base exception for ProductRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class DataFormatError(ProductRecException):
    """Raised when a row of the input file cannot be parsed."""

    def __init__(
        self,
        path: str,
        row: Optional[int] = None,
        reason: str = "expected two numeric fields",
    ):
        location = f" at data row {row}" if row is not None else ""
        message = f"Malformed input in '{path}'{location}: {reason}"
        super().__init__(
            message=message,
            status_code=422,
            details={"path": path, "row": row, "reason": reason},
        )


class UnseenKeyError(ProductRecException):
    """Raised when a product id was not observed in the training data."""

    def __init__(self, column: str, value: Any):
        message = (
            f"Value {value} of '{column}' was not seen during training. "
            "Cannot score products outside the training key space."
        )
        super().__init__(
            message=message,
            status_code=404,
            details={"column": column, "value": value},
        )


class TrainingFailure(ProductRecException):
    """Raised when the model cannot be trained."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Training failed: {reason}",
            status_code=500,
            details=details or {"reason": reason},
        )


class ModelNotFoundError(ProductRecException):
    """Raised when model files cannot be found."""

    def __init__(self, model_path: str, details: Optional[Dict[str, Any]] = None):
        message = f"Model not found at '{model_path}'. Please train a model first."
        super().__init__(
            message=message,
            status_code=503,
            details=details or {"model_path": model_path},
        )
