"""Error taxonomy and standardized error payloads."""
from __future__ import annotations

from typing import Any

from fastapi import HTTPException


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


class TransactionServiceError(HTTPException):
    """Base error raised by the transaction core.

    Subclasses pin the HTTP status and error code so the FastAPI handler can
    render them without any mapping table.
    """

    http_status: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(
            status_code=self.http_status,
            detail=error_response(self.code, self.message, details),
        )

    def __str__(self) -> str:
        return self.message


class BadRequestError(TransactionServiceError):
    http_status = 400
    code = "BAD_REQUEST"
    default_message = "The request could not be processed."


class NotFoundError(TransactionServiceError):
    http_status = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."


class AccountNotFoundError(NotFoundError):
    code = "ACCOUNT_NOT_FOUND"
    default_message = "Account not found."


class TransactionNotFoundError(NotFoundError):
    code = "TRANSACTION_NOT_FOUND"
    default_message = "Transaction not found."


class UnprocessableError(TransactionServiceError):
    """The transaction is not in a state compatible with the operation."""

    http_status = 422
    code = "UNPROCESSABLE"
    default_message = "Unable to process the request."


class ConflictError(TransactionServiceError):
    http_status = 409
    code = "CONFLICT"
    default_message = "The request conflicts with the current state of the resource."


class TransactionPostedError(ConflictError):
    code = "TRANSACTION_POSTED"
    default_message = "Transaction has already been posted and cannot be modified or deleted."


class BalanceConflictError(ConflictError):
    code = "BALANCE_CONFLICT"
    default_message = "Account balance changed while the transaction was processed. Please retry."


__all__ = [
    "error_response",
    "TransactionServiceError",
    "BadRequestError",
    "NotFoundError",
    "AccountNotFoundError",
    "TransactionNotFoundError",
    "UnprocessableError",
    "ConflictError",
    "TransactionPostedError",
    "BalanceConflictError",
]
