"""Dispatcher: binds Replies to inbound requests and delivers them to a transport.

The transport is anything with an ``async deliver(delivery)`` method; the
Starlette binding lives in ``riposte.middleware``.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Protocol

from riposte.core.config import RiposteOptions, Settings, get_settings
from riposte.core.errors import (
    GENERIC_SERVER_ERROR,
    INTERNAL_SERVER_ERROR,
    ConfigurationError,
    Ok,
    Result,
)
from riposte.core.logging import LoggingObserver, ReplyObserver
from riposte.registry import Handler, HandlerRegistry, HandlerType, handler_key
from riposte.reply import Reply

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True, slots=True)
class RequestInfo:
    """Transport-neutral description of an inbound request, used for logging."""
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    client: str | None = None

    @property
    def is_mutating(self) -> bool:
        return self.method.upper() in MUTATING_METHODS


@dataclass(frozen=True, slots=True)
class Delivery:
    """What was handed to the transport; ``response`` is the transport's own object."""
    reply_id: str
    status_code: int
    body: dict
    response: Any = None


class Transport(Protocol):
    async def deliver(self, delivery: Delivery) -> Any: ...


class Dispatcher:
    """Owns the handler registry, options and observer shared by its Replies.

    Usage:
        dispatcher = Dispatcher({"log_request_level": "info"})
        reply = dispatcher.begin(request_info, transport)
        await reply.add_not_found()
        delivery = await dispatcher.finish(reply)
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        registry: HandlerRegistry | None = None,
        observer: ReplyObserver | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.options = RiposteOptions.from_settings(self.settings).merged(dict(options or {}))
        self.registry = registry if registry is not None else HandlerRegistry.with_defaults()
        self._custom_observer = observer
        self.observer: ReplyObserver = observer or self._build_observer()

    def _build_observer(self) -> ReplyObserver:
        return LoggingObserver(
            logger=self.options.logger,
            request_level=self.options.log_request_level,
            reply_level=self.options.log_reply_level,
            error_level=self.options.log_error_level,
            debug=self.options.debug,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Dispatcher:
        """Apply options; unsupported keys are ignored."""
        self.options = self.options.merged({**(options or {}), **kwargs})
        if self._custom_observer is None:
            self.observer = self._build_observer()
        return self

    def get(self, key: str) -> Any:
        return getattr(self.options, key, None)

    @property
    def translatable(self) -> bool:
        """True when factories should emit translation keys instead of literals."""
        return self.options.translator is not None

    def use(self, handler_type: HandlerType | str, handler: Handler) -> Dispatcher:
        self.registry.use(handler_type, handler)
        return self

    def default_options(self, handler_type: HandlerType | str) -> dict:
        try:
            name = HandlerType(handler_key(handler_type)).options_field
        except ValueError:
            return {}
        return dict(getattr(self.options, name)) if name else {}

    async def handle(
        self,
        handler_type: HandlerType | str,
        value: Any = None,
        options: Mapping[str, Any] | None = None,
    ) -> Result[Any, Any]:
        """Run a handler; explicit options are layered over the tag's defaults."""
        merged = {**self.default_options(handler_type), **(options or {})}
        self.observer.trace("handle", handler_type=handler_key(handler_type))
        return await self.registry.run(handler_type, value, merged, self)

    # ------------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------------

    def create_reply(self, **fields: Any) -> Reply:
        return Reply(self, **fields)

    def last_resort(self, reply: Reply) -> Delivery:
        """Generic 500 built without any handler."""
        _, message = GENERIC_SERVER_ERROR
        return Delivery(
            reply_id=reply.id,
            status_code=INTERNAL_SERVER_ERROR,
            body={"id": reply.id, "errors": [{"message": message, "httpStatusCode": INTERNAL_SERVER_ERROR}]},
        )

    async def _deliver(self, reply: Reply, delivery: Delivery) -> Delivery:
        if reply.transport is not None:
            delivery = replace(delivery, response=await reply.transport.deliver(delivery))
        reply.delivery = delivery
        self.observer.reply(reply.id, delivery.status_code, delivery.body)
        return delivery

    async def send(self, reply: Reply, options: Mapping[str, Any] | None = None) -> Result[Delivery, Any]:
        """Resolve ``reply`` and deliver it once; later calls return the first delivery."""
        if reply.delivery is not None:
            self.observer.trace("reply_already_sent", reply_id=reply.id)
            return Ok(reply.delivery)

        resolved = await reply.to_object(options)
        if resolved.is_err():
            self.observer.error(resolved.unwrap_err(), reply.id)
            return resolved

        outcome = resolved.unwrap()
        delivery = Delivery(reply_id=reply.id, status_code=outcome.status_code, body=outcome.body)
        return Ok(await self._deliver(reply, delivery))

    # ------------------------------------------------------------------
    # Request hooks
    # ------------------------------------------------------------------

    def begin(self, request: RequestInfo | None = None, transport: Transport | None = None, **fields: Any) -> Reply:
        """Pre-hook: a fresh Reply bound to this request's transport."""
        reply = self.create_reply(transport=transport, **fields)
        self.observer.request(reply.id, request)
        return reply

    async def finish(self, reply: Reply | None) -> Delivery:
        """Post-hook: resolve and deliver, falling back to the last-resort 500."""
        if reply is None:
            error = ConfigurationError(
                "No reply is bound to this request. Did you forget to install the pre-request hook "
                "(RiposteMiddleware or Dispatcher.begin) before sending?"
            )
            self.observer.error(error)
            raise error

        try:
            sent = await self.send(reply)
        except asyncio.CancelledError:
            self.observer.trace("reply_abandoned", reply_id=reply.id)
            raise

        if sent.is_ok():
            return sent.unwrap()
        return await self._deliver(reply, self.last_resort(reply))

    async def fail(self, reply: Reply | None, errors: Any, transport: Transport | None = None) -> Delivery:
        """Fault-hook: add what the transport caught, then finish the Reply."""
        if reply is None:
            reply = self.create_reply(transport=transport)

        if isinstance(errors, BaseException):
            self.observer.error(errors, reply.id)

        if reply.delivered:
            self.observer.trace("fault_after_delivery", reply_id=reply.id)
            return reply.delivery

        added = await reply.add_errors(errors)
        if added.is_err():
            self.observer.error(added.unwrap_err(), reply.id)
            return await self._deliver(reply, self.last_resort(reply))
        return await self.finish(reply)
