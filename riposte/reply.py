"""Reply: the per-request aggregate of response data and errors.

Mutations that never suspend (``set_data``, ``pin_status``, ``from_object``)
return the Reply. Everything that runs a handler is a coroutine returning a
``Result``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Sequence
from uuid import uuid4

from riposte.core.errors import (
    BAD_REQUEST,
    CONFLICT,
    DEFAULT_STATUS_CODE,
    FORBIDDEN,
    INTERNAL_SERVER_ERROR,
    NOT_FOUND,
    PAYMENT_REQUIRED,
    UNAUTHORIZED,
    Err,
    HandlerFault,
    Ok,
    ReplyError,
    Result,
    is_valid_status,
)
from riposte.registry import HandlerType

if TYPE_CHECKING:
    from riposte.dispatcher import Delivery, Dispatcher, Transport

OK_STATUS_CODE = 200

# Keys of the options mapping accepted by ``Reply.to_object``
OPTIONS_KEY_SANITIZE_REPLY_DATA = "sanitize_reply_data"
OPTIONS_KEY_ERROR_TO_OBJECT = "error_to_object"
OPTIONS_KEY_LOCALE = "locale"


@dataclass(frozen=True, slots=True)
class ResolvedReply:
    """Outcome of resolution: the transport status and the wire body."""
    status_code: int
    body: dict

    def to_dict(self) -> dict:
        return {**self.body, "httpStatusCode": self.status_code}


class Reply:
    """Response data plus an ordered list of normalized errors for one request.

    A Reply belongs to the request that created it and reaches handlers only
    through its dispatcher.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        id: str | None = None,
        data: Any = None,
        errors: Sequence[ReplyError] | None = None,
        http_status_code: int | None = None,
        transport: Transport | None = None,
        options: Mapping[str, Any] | None = None,
    ):
        self.dispatcher = dispatcher
        self.transport = transport
        self.delivery: Delivery | None = None
        self.from_object({
            "id": id,
            "data": data,
            "errors": errors,
            "http_status_code": http_status_code,
            "options": options,
        })

    def __repr__(self) -> str:
        return f"Reply(id={self.id!r}, errors={len(self.errors)}, has_data={self.data is not None})"

    # ------------------------------------------------------------------
    # Synchronous mutations
    # ------------------------------------------------------------------

    def from_object(self, obj: Mapping[str, Any] | None = None) -> Reply:
        """Reset this Reply from a mapping; missing keys take their defaults.

        ``errors`` must already be normalized; use ``add_errors`` for raw values.
        """
        obj = obj or {}
        errors = list(obj.get("errors") or [])
        for error in errors:
            if not isinstance(error, ReplyError):
                raise TypeError(f"errors must hold ReplyError instances, got {type(error).__name__}")

        self.id = obj.get("id") or str(uuid4())
        self.data = obj.get("data")
        self.errors: list[ReplyError] = errors
        self.options: dict[str, Any] = dict(obj.get("options") or {})
        self.http_status_code: int | None = None
        if obj.get("http_status_code") is not None:
            self.pin_status(obj["http_status_code"])
        return self

    def set_data(self, data: Any) -> Reply:
        self.data = data
        return self

    def pin_status(self, http_status_code: int | None) -> Reply:
        """Fix the status code an errored Reply resolves to; None unpins.

        Data-only Replies always resolve to 200 and empty ones to 404.
        """
        if http_status_code is not None and not is_valid_status(http_status_code):
            raise ValueError(f"Invalid HTTP status code: {http_status_code!r}")
        self.http_status_code = http_status_code
        return self

    @property
    def is_empty(self) -> bool:
        return self.data is None and not self.errors

    @property
    def delivered(self) -> bool:
        return self.delivery is not None

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    async def _normalize(self, errors: Any) -> Result[list[ReplyError], Any]:
        if errors is None:
            return Ok([])
        if not isinstance(errors, (list, tuple)):
            errors = [errors]

        normalized: list[ReplyError] = []
        for raw in errors:
            created = await self.dispatcher.handle(HandlerType.CREATE_ERROR, raw)
            if created.is_err():
                return created
            error = created.unwrap()
            if not isinstance(error, ReplyError):
                return Err(HandlerFault(
                    HandlerType.CREATE_ERROR.value,
                    f"returned {type(error).__name__}, expected ReplyError",
                ))
            normalized.append(error)
        return Ok(normalized)

    async def add_errors(self, errors: Any) -> Result[list[ReplyError], Any]:
        """Normalize and append one error or a sequence of errors, in order.

        Nothing is appended when any of them fails to normalize.
        """
        normalized = await self._normalize(errors)
        if normalized.is_err():
            return normalized
        self.errors.extend(normalized.unwrap())
        return Ok(list(self.errors))

    async def set_errors(self, errors: Any) -> Result[list[ReplyError], Any]:
        normalized = await self._normalize(errors)
        if normalized.is_err():
            return normalized
        self.errors = normalized.unwrap()
        return Ok(list(self.errors))

    async def add_errors_and_set_data(self, errors: Any, data: Any) -> Result[Reply, Any]:
        added = await self.add_errors(errors)
        if added.is_err():
            return added
        return Ok(self.set_data(data))

    async def add(
        self,
        handler_type: HandlerType | str,
        value: Any = None,
        options: dict | None = None,
    ) -> Result[list[ReplyError], Any]:
        """Create an error with ``handler_type``'s handler and append it."""
        created = await self.dispatcher.handle(handler_type, value, options)
        if created.is_err():
            return created
        return await self.add_errors(created.unwrap())

    async def add_bad_request(self, options: dict | None = None) -> Result[list[ReplyError], Any]:
        return await self.add(HandlerType.CREATE_CLIENT_ERROR, BAD_REQUEST, options)

    async def add_unauthorized(self, options: dict | None = None) -> Result[list[ReplyError], Any]:
        return await self.add(HandlerType.CREATE_CLIENT_ERROR, UNAUTHORIZED, options)

    async def add_payment_required(self, options: dict | None = None) -> Result[list[ReplyError], Any]:
        return await self.add(HandlerType.CREATE_CLIENT_ERROR, PAYMENT_REQUIRED, options)

    async def add_forbidden(self, options: dict | None = None) -> Result[list[ReplyError], Any]:
        return await self.add(HandlerType.CREATE_CLIENT_ERROR, FORBIDDEN, options)

    async def add_not_found(self, options: dict | None = None) -> Result[list[ReplyError], Any]:
        return await self.add(HandlerType.CREATE_CLIENT_ERROR, NOT_FOUND, options)

    async def add_conflict(self, options: dict | None = None) -> Result[list[ReplyError], Any]:
        return await self.add(HandlerType.CREATE_CLIENT_ERROR, CONFLICT, options)

    async def add_internal_server_error(self, options: dict | None = None) -> Result[list[ReplyError], Any]:
        return await self.add(HandlerType.CREATE_SERVER_ERROR, INTERNAL_SERVER_ERROR, options)

    # ------------------------------------------------------------------
    # Append-and-send
    # ------------------------------------------------------------------

    async def set(
        self,
        handler_type: HandlerType | str,
        value: Any = None,
        options: dict | None = None,
    ) -> Result[Delivery, Any]:
        """Replace the errors with the one ``handler_type`` creates, then send."""
        created = await self.dispatcher.handle(handler_type, value, options)
        if created.is_err():
            return created
        replaced = await self.set_errors(created.unwrap())
        if replaced.is_err():
            return replaced
        return await self.send()

    async def set_bad_request(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.set(HandlerType.CREATE_CLIENT_ERROR, BAD_REQUEST, options)

    async def set_unauthorized(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.set(HandlerType.CREATE_CLIENT_ERROR, UNAUTHORIZED, options)

    async def set_payment_required(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.set(HandlerType.CREATE_CLIENT_ERROR, PAYMENT_REQUIRED, options)

    async def set_forbidden(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.set(HandlerType.CREATE_CLIENT_ERROR, FORBIDDEN, options)

    async def set_not_found(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.set(HandlerType.CREATE_CLIENT_ERROR, NOT_FOUND, options)

    async def set_conflict(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.set(HandlerType.CREATE_CLIENT_ERROR, CONFLICT, options)

    async def set_internal_server_error(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.set(HandlerType.CREATE_SERVER_ERROR, INTERNAL_SERVER_ERROR, options)

    async def send(self, options: dict | None = None) -> Result[Delivery, Any]:
        return await self.dispatcher.send(self, options)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _error_to_object(self, error: ReplyError, options: Mapping[str, Any]) -> Result[dict, Any]:
        bag = {**(options.get(OPTIONS_KEY_ERROR_TO_OBJECT) or {})}
        if options.get(OPTIONS_KEY_LOCALE) is not None:
            bag.setdefault("locale", options[OPTIONS_KEY_LOCALE])
        return await self.dispatcher.handle(HandlerType.ERROR_TO_OBJECT, error, bag)

    async def to_object(self, options: Mapping[str, Any] | None = None) -> Result[ResolvedReply, Any]:
        """Resolve this Reply into a status code and wire body.

        Stages run strictly in order and the first fault aborts with ``Err``:

        1. No data and no errors: a single synthesized 404 error, and no
           other stage runs.
        2. Data goes through the sanitize-reply-data handler.
        3. Errors are serialized in insertion order; the status is the
           highest error status, the first one winning ties, unset ones
           counting as 500. Without errors the status is 200.
        4. ``id`` is attached.
        5. A pinned status replaces the computed one when there are errors.
        """
        options = {**self.options, **(options or {})}

        if self.is_empty:
            created = await self.dispatcher.handle(HandlerType.CREATE_CLIENT_ERROR, NOT_FOUND)
            if created.is_err():
                return created
            error = created.unwrap()
            converted = await self._error_to_object(error, options)
            if converted.is_err():
                return converted
            status = error.http_status_code if isinstance(error, ReplyError) and error.http_status_code else NOT_FOUND
            return Ok(ResolvedReply(status_code=status, body={"id": self.id, "errors": [converted.unwrap()]}))

        body: dict[str, Any] = {}
        status: int | None = None

        if self.data is not None:
            sanitized = await self.dispatcher.handle(
                HandlerType.SANITIZE_REPLY_DATA, self.data, options.get(OPTIONS_KEY_SANITIZE_REPLY_DATA)
            )
            if sanitized.is_err():
                return sanitized
            body["data"] = sanitized.unwrap()

        errors = tuple(self.errors)
        if errors:
            serialized = []
            for error in errors:
                if status is None or error.status_code > status:
                    status = error.status_code
                converted = await self._error_to_object(error, options)
                if converted.is_err():
                    return converted
                serialized.append(converted.unwrap())
            body["errors"] = serialized
        else:
            status = OK_STATUS_CODE

        body.setdefault("id", self.id)

        if errors and self.http_status_code is not None:
            status = self.http_status_code
        if status is None:
            status = DEFAULT_STATUS_CODE
        return Ok(ResolvedReply(status_code=status, body=body))
