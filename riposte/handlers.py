"""Default Handlers

One coroutine per ``HandlerType``. Each takes ``(value, options, dispatcher)``
and returns ``Ok(result)`` or ``Err(fault)``. Factories delegate to the
``create-error`` handler through the dispatcher so a host replacement of that
handler applies everywhere.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from riposte.core.errors import (
    CLIENT_ERROR_MESSAGES,
    INTERNAL_SERVER_ERROR,
    REDIRECTION_MESSAGES,
    SERVER_ERROR_MESSAGES,
    ConfigurationError,
    Ok,
    ReplyError,
    ReplyErrorException,
    Result,
    generic_message,
    is_valid_status,
    message_for,
)
from riposte.core.logging import SENSITIVE_KEYS, redact
from riposte.registry import Handler, HandlerType

if TYPE_CHECKING:
    from riposte.dispatcher import Dispatcher

_ERROR_OPTION_FIELDS = ("code", "message_data", "reference_data", "internal_only")


def _status_option(options: Mapping[str, Any], dispatcher: Dispatcher) -> int | None:
    status = options.get("http_status_code")
    if status is None or is_valid_status(status):
        return status
    dispatcher.observer.error(
        ConfigurationError(f"Ignoring invalid http_status_code {status!r} passed to create-error")
    )
    return None


async def create_error(value: Any, options: dict, dispatcher: Dispatcher) -> Result[ReplyError, Any]:
    """Normalize any value into a ``ReplyError``.

    Already-normalized errors pass through unchanged. Exceptions keep their
    message and traceback; strings become the message. The status code comes
    from ``options["http_status_code"]`` when given.
    """
    if isinstance(value, ReplyErrorException):
        value = value.error
    if isinstance(value, ReplyError):
        return Ok(value)

    status = _status_option(options, dispatcher)
    extras = {k: options[k] for k in _ERROR_OPTION_FIELDS if options.get(k) is not None}

    if isinstance(value, BaseException):
        error = ReplyError.from_exception(value, **extras)
        return Ok(error.with_status(status) if status is not None else error)

    if isinstance(value, Mapping):
        fields = {k: value[k] for k in _ERROR_OPTION_FIELDS if value.get(k) is not None}
        fields.update(extras)
        own_status = value.get("http_status_code")
        return Ok(ReplyError(
            message=str(value.get("message") or generic_message(False)),
            http_status_code=status if status is not None else (own_status if is_valid_status(own_status) else None),
            **fields,
        ))

    message = generic_message(False) if value is None else str(value)
    return Ok(ReplyError(message=message, http_status_code=status, **extras))


async def _create_from_table(
    handler_type: HandlerType,
    table: Mapping[int, tuple[str, str]],
    status: Any,
    options: dict,
    dispatcher: Dispatcher,
) -> Result[ReplyError, Any]:
    try:
        status = int(status)
    except (TypeError, ValueError):
        status = None

    message = message_for(table, status, dispatcher.translatable) if status is not None else None
    if message is None:
        dispatcher.observer.error(
            ConfigurationError(f"Unhandled status code of {status} in the {handler_type.value} handler")
        )
        message, status = generic_message(dispatcher.translatable), INTERNAL_SERVER_ERROR

    return await dispatcher.handle(
        HandlerType.CREATE_ERROR, message, {**options, "http_status_code": status}
    )


async def create_client_error(status: Any, options: dict, dispatcher: Dispatcher) -> Result[ReplyError, Any]:
    return await _create_from_table(HandlerType.CREATE_CLIENT_ERROR, CLIENT_ERROR_MESSAGES, status, options, dispatcher)


async def create_redirection_error(status: Any, options: dict, dispatcher: Dispatcher) -> Result[ReplyError, Any]:
    return await _create_from_table(
        HandlerType.CREATE_REDIRECTION_ERROR, REDIRECTION_MESSAGES, status, options, dispatcher
    )


async def create_server_error(status: Any, options: dict, dispatcher: Dispatcher) -> Result[ReplyError, Any]:
    return await _create_from_table(HandlerType.CREATE_SERVER_ERROR, SERVER_ERROR_MESSAGES, status, options, dispatcher)


async def create_ok(status: Any, options: dict, dispatcher: Dispatcher) -> Result[Any, Any]:
    """``Ok(True)`` for 200; any other code is a configuration fault turned into the generic error."""
    if status == 200 or status == "200":
        return Ok(True)
    dispatcher.observer.error(ConfigurationError(f"Unhandled status code of {status} in the create-ok handler"))
    return await dispatcher.handle(
        HandlerType.CREATE_ERROR,
        generic_message(dispatcher.translatable),
        {**options, "http_status_code": INTERNAL_SERVER_ERROR},
    )


async def error_to_object(error: Any, options: dict, dispatcher: Dispatcher) -> Result[dict, Any]:
    """Serialize a ``ReplyError`` into its wire object.

    Options:
        locale: passed to the translate handler.
        include_stack: add the ``stack`` field when the error has one.
    """
    if not isinstance(error, ReplyError):
        normalized = await dispatcher.handle(HandlerType.CREATE_ERROR, error)
        if normalized.is_err():
            return normalized
        error = normalized.unwrap()

    if error.internal_only:
        message, message_data = generic_message(dispatcher.translatable), {}
    else:
        message, message_data = error.message, dict(error.message_data)

    translated = await dispatcher.handle(
        HandlerType.TRANSLATE,
        message,
        {"locale": options.get("locale"), "message_data": message_data},
    )
    if translated.is_err():
        return translated

    obj: dict[str, Any] = {"message": translated.unwrap(), "httpStatusCode": error.status_code}
    if error.internal_only:
        return Ok(obj)
    if error.code:
        obj["code"] = error.code
    if options.get("include_stack") and error.stack:
        obj["stack"] = error.stack
    if error.reference_data:
        obj["referenceData"] = dict(error.reference_data)
    return Ok(obj)


async def sanitize_reply_data(data: Any, options: dict, dispatcher: Dispatcher) -> Result[Any, Any]:
    return Ok(data)


async def redact_sensitive_data(data: Any, options: dict, dispatcher: Dispatcher) -> Result[Any, Any]:
    """Sanitizer that masks values stored under sensitive keys.

    Not installed by default; enable with
    ``dispatcher.use(HandlerType.SANITIZE_REPLY_DATA, redact_sensitive_data)``.
    """
    keys = options.get("sensitive_keys")
    sensitive = frozenset(k.lower() for k in keys) if keys else SENSITIVE_KEYS
    return Ok(redact(data, sensitive, max_depth=options.get("max_depth", 32)))


async def translate(value: Any, options: dict, dispatcher: Dispatcher) -> Result[Any, Any]:
    translator = dispatcher.options.translator
    if translator is None or not isinstance(value, str):
        return Ok(value)
    locale = options.get("locale") or dispatcher.options.default_locale
    return Ok(translator.translate(value, locale, **(options.get("message_data") or {})))


DEFAULT_HANDLERS: dict[HandlerType, Handler] = {
    HandlerType.CREATE_CLIENT_ERROR: create_client_error,
    HandlerType.CREATE_ERROR: create_error,
    HandlerType.CREATE_OK: create_ok,
    HandlerType.CREATE_REDIRECTION_ERROR: create_redirection_error,
    HandlerType.CREATE_SERVER_ERROR: create_server_error,
    HandlerType.ERROR_TO_OBJECT: error_to_object,
    HandlerType.SANITIZE_REPLY_DATA: sanitize_reply_data,
    HandlerType.TRANSLATE: translate,
}
