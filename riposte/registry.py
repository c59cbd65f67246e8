"""Handler registry: named extension points with replaceable implementations."""
from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from riposte.core.errors import ConfigurationError, Err, HandlerFault, Ok, Result
from riposte.core.logging import dispatch_logger

if TYPE_CHECKING:
    from riposte.dispatcher import Dispatcher

log = dispatch_logger()

Handler = Callable[[Any, dict, "Dispatcher"], Awaitable[Result[Any, Any]]]


class HandlerType(str, Enum):
    CREATE_CLIENT_ERROR = "create-client-error"
    CREATE_ERROR = "create-error"
    CREATE_OK = "create-ok"
    CREATE_REDIRECTION_ERROR = "create-redirection-error"
    CREATE_SERVER_ERROR = "create-server-error"
    ERROR_TO_OBJECT = "error-to-object"
    SANITIZE_REPLY_DATA = "sanitize-reply-data"
    TRANSLATE = "translate"

    @property
    def options_field(self) -> str | None:
        """Name of the ``RiposteOptions`` bag holding this handler's default options."""
        if self is HandlerType.TRANSLATE:
            return None
        return "default_" + self.value.replace("-", "_") + "_options"


def handler_key(handler_type: HandlerType | str) -> str:
    if isinstance(handler_type, HandlerType):
        return handler_type.value
    return str(handler_type)


class HandlerRegistry:
    """Table of handlers keyed by tag.

    ``use`` replaces a handler outright. Running a tag with no handler is a
    logged no-op that hands the input back unchanged.
    """

    def __init__(self, handlers: Mapping[HandlerType | str, Handler] | None = None):
        self._handlers: dict[str, Handler] = {}
        self._frozen = False
        for handler_type, handler in (handlers or {}).items():
            self.use(handler_type, handler)

    @classmethod
    def with_defaults(cls) -> HandlerRegistry:
        from riposte.handlers import DEFAULT_HANDLERS

        return cls(DEFAULT_HANDLERS)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> HandlerRegistry:
        """Reject further ``use`` calls; call once startup configuration is done."""
        self._frozen = True
        return self

    def copy(self) -> HandlerRegistry:
        return HandlerRegistry(self._handlers)

    def use(self, handler_type: HandlerType | str, handler: Handler) -> HandlerRegistry:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot replace the '{handler_key(handler_type)}' handler: the registry is frozen"
            )
        if not callable(handler):
            raise ConfigurationError(f"Handler for '{handler_key(handler_type)}' must be callable")
        self._handlers[handler_key(handler_type)] = handler
        return self

    def get(self, handler_type: HandlerType | str) -> Handler | None:
        return self._handlers.get(handler_key(handler_type))

    def __contains__(self, handler_type: object) -> bool:
        return isinstance(handler_type, (HandlerType, str)) and handler_key(handler_type) in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    async def run(
        self,
        handler_type: HandlerType | str,
        value: Any,
        options: dict,
        dispatcher: Dispatcher,
    ) -> Result[Any, Any]:
        key = handler_key(handler_type)
        handler = self._handlers.get(key)
        if handler is None:
            log.warning("handler_missing", handler_type=key)
            return Ok(value)

        try:
            result = await handler(value, options, dispatcher)
        except Exception as exc:
            return Err(HandlerFault(key, str(exc) or type(exc).__name__, exc))

        if not isinstance(result, (Ok, Err)):
            return Err(HandlerFault(key, f"returned {type(result).__name__}, expected Ok or Err"))
        return result
