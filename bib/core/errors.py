"""
Helpers for reading PostgREST errors raised by the Supabase SDK
"""

from fastapi import HTTPException
from postgrest.exceptions import APIError
from typing import Optional

UNIQUE_VIOLATION = "23505"
INTERNAL_ERROR = "XX000"
SERVER_BUSY_MESSAGE = "Server is busy. Please try again in a moment."


class CodedHTTPException(HTTPException):
    """HTTPException that also reports the backend error code in the response body"""

    def __init__(self, status_code: int, detail: str, code: str = ""):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


def error_code(exc: Exception) -> str:
    if isinstance(exc, APIError):
        return str(exc.code or "")
    return ""


def error_message(exc: Exception) -> str:
    if isinstance(exc, APIError):
        return str(exc.message or "")
    return str(exc)


def is_unique_violation(exc: Exception) -> bool:
    return error_code(exc) == UNIQUE_VIOLATION


def is_server_busy(exc: Exception) -> bool:
    """Postgres internal errors (usually OOM on the hosted instance)."""
    return error_code(exc) == INTERNAL_ERROR or "out of memory" in error_message(exc).lower()


def is_missing_column(exc: Exception, *columns: str) -> bool:
    """True when the table predates a migration that added one of the given columns."""
    message = error_message(exc)
    if "schema cache" in message:
        return True
    return any(column in message for column in columns)


def raise_for_api_error(exc: Exception, conflict_detail: Optional[str] = None, fallback: str = "Request failed."):
    """Map a backend error to an HTTPException. Always raises."""
    if isinstance(exc, HTTPException):
        raise exc
    code = error_code(exc)
    if conflict_detail and is_unique_violation(exc):
        raise CodedHTTPException(status_code=409, detail=conflict_detail, code=code)
    if is_server_busy(exc):
        raise CodedHTTPException(status_code=503, detail=SERVER_BUSY_MESSAGE, code=code)
    raise CodedHTTPException(status_code=500, detail=error_message(exc) or fallback, code=code)
