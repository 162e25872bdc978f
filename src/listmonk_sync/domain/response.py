"""Uniform result envelope returned by every client operation."""

from __future__ import annotations

from dataclasses import dataclass

OK_MESSAGE = "OK"
UNKNOWN_ERROR_MESSAGE = "Unknown error"


@dataclass(slots=True)
class ApiResponse[T]:
    """``{success, code, message, data}`` envelope.

    Expected failures (validation, remote errors, timeouts) are reported through
    this type instead of exceptions.
    """

    success: bool = False
    code: int = 500
    message: str = UNKNOWN_ERROR_MESSAGE
    data: T | None = None

    @classmethod
    def ok(cls, data: T | None, *, code: int = 200, message: str = OK_MESSAGE) -> ApiResponse[T]:
        return cls(success=True, code=code, message=message, data=data)

    @classmethod
    def error(
        cls,
        message_or_error: object,
        *,
        code: int = 500,
        data: T | None = None,
    ) -> ApiResponse[T]:
        if isinstance(message_or_error, BaseException):
            message = str(message_or_error)
        elif isinstance(message_or_error, str):
            message = message_or_error
        else:
            message = "Error"
        return cls(success=False, code=code, message=message or "Error", data=data)

    def is_success(self) -> bool:
        return self.success and self.data is not None

    def as_failure[U](self) -> ApiResponse[U]:
        """Re-type a failed response so it can be returned from another operation."""

        return ApiResponse(success=False, code=self.code, message=self.message)
