"""FastAPI / Starlette Binding

Provides:
- ``RiposteMiddleware``: binds a Reply to every request, turns uncaught
  exceptions into a resolved reply
- exception handlers for ``ReplyErrorException``, ``HTTPException`` and
  request validation errors
- ``get_reply`` dependency and ``respond`` post-hook for route code
- ``RiposteRoute``: sends the bound Reply when an endpoint returns nothing

Usage:
    app = FastAPI()
    install(app, Dispatcher())

    @app.get("/users/{user_id}")
    async def get_user(user_id: str, reply: Reply = Depends(get_reply)):
        reply.set_data(await load_user(user_id))
        return await respond(reply)
"""
from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from riposte.core.errors import (
    BAD_REQUEST,
    CLIENT_ERROR_MESSAGES,
    REDIRECTION_MESSAGES,
    SERVER_ERROR_MESSAGES,
    ConfigurationError,
    ReplyError,
    ReplyErrorException,
)
from riposte.core.logging import bind_context, unbind_context
from riposte.dispatcher import Delivery, Dispatcher, RequestInfo
from riposte.registry import HandlerType
from riposte.reply import OPTIONS_KEY_LOCALE, Reply
from riposte.translation import parse_accept_language

REPLY_ID_HEADER = "X-Reply-ID"
MAX_LOGGED_BODY_BYTES = 4096


class StarletteTransport:
    """Delivers a resolved reply as a ``JSONResponse``."""

    async def deliver(self, delivery: Delivery) -> JSONResponse:
        return JSONResponse(
            status_code=delivery.status_code,
            content=jsonable_encoder(delivery.body),
            headers={REPLY_ID_HEADER: delivery.reply_id},
        )


async def request_info(request: Request) -> RequestInfo:
    body: Any = None
    if request.method.upper() in ("POST", "PUT", "PATCH"):
        raw = (await request.body())[:MAX_LOGGED_BODY_BYTES]
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            body = raw.decode("utf-8", errors="replace")
    return RequestInfo(
        method=request.method,
        url=str(request.url),
        headers=dict(request.headers),
        body=body,
        client=request.client.host if request.client else None,
    )


class RiposteMiddleware(BaseHTTPMiddleware):
    """Pre-hook and fault-hook around every request."""

    def __init__(self, app, dispatcher: Dispatcher):
        super().__init__(app)
        self.dispatcher = dispatcher

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        reply = self.dispatcher.begin(await request_info(request), transport=StarletteTransport())
        if self.dispatcher.translatable:
            locale = parse_accept_language(request.headers.get("Accept-Language"))
            if locale:
                reply.options[OPTIONS_KEY_LOCALE] = locale
        request.state.reply = reply

        bind_context(reply_id=reply.id)
        try:
            response = await call_next(request)
        except Exception as exc:
            delivery = await self.dispatcher.fail(reply, exc)
            return delivery.response
        finally:
            unbind_context("reply_id")

        if REPLY_ID_HEADER not in response.headers:
            response.headers[REPLY_ID_HEADER] = reply.id
        return response


def get_reply(request: Request) -> Reply:
    """FastAPI dependency returning the Reply bound to this request."""
    reply = getattr(request.state, "reply", None)
    if reply is None:
        raise ConfigurationError(
            "No reply is bound to this request. Did you forget to call install(app, dispatcher)?"
        )
    return reply


async def respond(reply: Reply | Request | None) -> Response:
    """Post-hook for route code: resolve, deliver and return the response.

    Accepts the Reply itself or the request it is bound to.
    """
    if isinstance(reply, Request):
        reply = get_reply(reply)
    if reply is None:
        raise ConfigurationError("respond() needs the request's Reply; use Depends(get_reply)")
    delivery = await reply.dispatcher.finish(reply)
    return delivery.response


async def _http_error(dispatcher: Dispatcher, exc: StarletteHTTPException) -> Any:
    """The factory error for a well-known status, else a plain error keeping the detail."""
    status = exc.status_code
    try:
        standard_detail = HTTPStatus(status).phrase
    except ValueError:
        standard_detail = None

    if exc.detail in (None, "", standard_detail):
        for handler_type, table in (
            (HandlerType.CREATE_CLIENT_ERROR, CLIENT_ERROR_MESSAGES),
            (HandlerType.CREATE_REDIRECTION_ERROR, REDIRECTION_MESSAGES),
            (HandlerType.CREATE_SERVER_ERROR, SERVER_ERROR_MESSAGES),
        ):
            if status in table:
                return await dispatcher.handle(handler_type, status)

    message = exc.detail if isinstance(exc.detail, str) and exc.detail else standard_detail or f"HTTP {status}"
    return await dispatcher.handle(HandlerType.CREATE_ERROR, message, {"http_status_code": status})


class RiposteRoute(APIRoute):
    """Route that sends the bound Reply when the endpoint returns nothing.

    A Reply already sent by a ``set_*`` helper yields its first delivery.
    Endpoints that return a response of their own are left alone.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()

        async def route_handler(request: Request) -> Response:
            response = await handler(request)
            reply = getattr(request.state, "reply", None)
            if reply is not None and getattr(response, "body", None) == b"null":
                return await respond(reply)
            return response

        return route_handler


def install(app: FastAPI, dispatcher: Dispatcher | None = None) -> Dispatcher:
    """Add the middleware and exception handlers to ``app``.

    Routes declared on ``app`` after this call use ``RiposteRoute``, so an
    endpoint that only mutates its Reply and returns ``None`` still sends it.
    Separate routers need ``APIRouter(route_class=RiposteRoute)``, or their
    endpoints must ``return await respond(reply)``.

    Usage in main.py:
        app = FastAPI(...)
        dispatcher = install(app, Dispatcher({"translator": translator}))
    """
    dispatcher = dispatcher or Dispatcher()
    app.router.route_class = RiposteRoute
    app.state.riposte = dispatcher
    app.add_middleware(RiposteMiddleware, dispatcher=dispatcher)

    async def _fail(request: Request, errors: Any) -> Response:
        reply = getattr(request.state, "reply", None)
        delivery = await dispatcher.fail(reply, errors, transport=StarletteTransport())
        return delivery.response

    @app.exception_handler(ReplyErrorException)
    async def handle_reply_error(request: Request, exc: ReplyErrorException) -> Response:
        return await _fail(request, exc.error)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> Response:
        created = await _http_error(dispatcher, exc)
        response = await _fail(request, created.unwrap() if created.is_ok() else exc)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
        errors = []
        for err in exc.errors():
            field = ".".join(str(loc) for loc in err.get("loc", ()))
            errors.append(ReplyError(
                message=f"{field}: {err.get('msg', 'Validation error')}",
                http_status_code=BAD_REQUEST,
                code=err.get("type", "value_error"),
                reference_data={"field": field},
            ))
        return await _fail(request, errors)

    return dispatcher
