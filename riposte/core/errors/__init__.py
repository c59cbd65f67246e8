"""Reply error types and status tables.

Usage:
    from riposte.core.errors import Ok, Err, HandlerFault

    async def handler(value, options, dispatcher):
        if value is None:
            return Err(HandlerFault("my-handler", "nothing to do"))
        return Ok(value)
"""
from .types import (
    DEFAULT_STATUS_CODE,
    ConfigurationError,
    Err,
    HandlerFault,
    Ok,
    ReplyError,
    ReplyErrorException,
    Result,
    is_valid_status,
    raise_error,
    raise_result,
)

from .builders import (
    BAD_REQUEST,
    CLIENT_ERROR_MESSAGES,
    CONFLICT,
    FORBIDDEN,
    GENERIC_SERVER_ERROR,
    INTERNAL_SERVER_ERROR,
    NOT_FOUND,
    PAYMENT_REQUIRED,
    REDIRECTION_MESSAGES,
    SERVER_ERROR_MESSAGES,
    UNAUTHORIZED,
    generic_message,
    known_statuses,
    message_for,
)

__all__ = [
    # Types
    "DEFAULT_STATUS_CODE",
    "ConfigurationError",
    "Err",
    "HandlerFault",
    "Ok",
    "ReplyError",
    "ReplyErrorException",
    "Result",
    "is_valid_status",
    "raise_error",
    "raise_result",
    # Status tables
    "BAD_REQUEST",
    "CLIENT_ERROR_MESSAGES",
    "CONFLICT",
    "FORBIDDEN",
    "GENERIC_SERVER_ERROR",
    "INTERNAL_SERVER_ERROR",
    "NOT_FOUND",
    "PAYMENT_REQUIRED",
    "REDIRECTION_MESSAGES",
    "SERVER_ERROR_MESSAGES",
    "UNAUTHORIZED",
    "generic_message",
    "known_statuses",
    "message_for",
]
