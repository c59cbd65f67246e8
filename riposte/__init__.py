"""Riposte: one canonical reply per HTTP request.

Collect data and errors on a ``Reply`` while handling a request, then let the
``Dispatcher`` resolve them into a single status code and body:

    dispatcher = Dispatcher()
    reply = dispatcher.create_reply()
    await reply.add_not_found()
    await reply.add_forbidden()
    resolved = (await reply.to_object()).unwrap()
    resolved.status_code  # 404
"""
from riposte.core.errors import (
    ConfigurationError,
    Err,
    HandlerFault,
    Ok,
    ReplyError,
    ReplyErrorException,
    Result,
    raise_error,
    raise_result,
)
from riposte.dispatcher import Delivery, Dispatcher, RequestInfo, Transport
from riposte.handlers import redact_sensitive_data
from riposte.registry import HandlerRegistry, HandlerType
from riposte.reply import Reply, ResolvedReply
from riposte.translation import CatalogTranslator, Translator

__version__ = "0.1.0"

__all__ = [
    "CatalogTranslator",
    "ConfigurationError",
    "Delivery",
    "Dispatcher",
    "Err",
    "HandlerFault",
    "HandlerRegistry",
    "HandlerType",
    "Ok",
    "ReplyError",
    "ReplyErrorException",
    "RequestInfo",
    "Reply",
    "ResolvedReply",
    "Result",
    "Transport",
    "Translator",
    "raise_error",
    "raise_result",
    "redact_sensitive_data",
]
