"""Custom exceptions for the question bank service."""

from typing import Any


class QuestionBankError(Exception):
    """Base exception for all question bank errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(QuestionBankError):
    """Resource not found or outside the caller's company."""

    def __init__(
        self,
        resource: str,
        resource_id: Any,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=f"{resource} with id '{resource_id}' not found",
            error_code="NOT_FOUND",
            details={
                "resource": resource,
                "resource_id": str(resource_id),
                **(details or {}),
            },
        )


class DomainValidationError(QuestionBankError):
    """Input validation failed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **(details or {})} if field else details,
        )


class UnauthorizedError(QuestionBankError):
    """No usable caller identity."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message=message, error_code="UNAUTHORIZED")


class ForbiddenError(QuestionBankError):
    """Caller is authenticated but not permitted to act on the resource."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code="FORBIDDEN", details=details)


class ConflictError(QuestionBankError):
    """A uniqueness constraint was violated."""

    def __init__(
        self,
        message: str = "Resource already exists",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, error_code="CONFLICT", details=details)
