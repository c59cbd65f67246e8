"""Error and Result Types

``Result`` is the package's single calling convention for anything that can
suspend: ``Ok(value)`` on success, ``Err(fault)`` on failure. ``ReplyError``
is the canonical error a Reply carries and serializes.
"""
from __future__ import annotations

import traceback
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Iterator, Mapping, NoReturn, TypeVar, Union, final

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")

MIN_STATUS_CODE = 100
MAX_STATUS_CODE = 599
DEFAULT_STATUS_CODE = 500


def is_valid_status(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and MIN_STATUS_CODE <= value <= MAX_STATUS_CODE
    )


@dataclass(frozen=True, slots=True)
class ReplyError:
    """Canonical error held by a Reply.

    ``http_status_code`` may be left unset; ``status_code`` then reports 500.
    ``message_data`` feeds translation, ``reference_data`` is extra context
    sent to the client, ``internal_only`` errors never expose their details.
    """
    message: str
    http_status_code: int | None = None
    code: str | None = None
    stack: str | None = None
    message_data: Mapping[str, Any] = field(default_factory=dict)
    reference_data: Mapping[str, Any] = field(default_factory=dict)
    internal_only: bool = False
    cause: BaseException | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.http_status_code is not None and not is_valid_status(self.http_status_code):
            raise ValueError(
                f"http_status_code must be an integer between {MIN_STATUS_CODE} and "
                f"{MAX_STATUS_CODE}, got {self.http_status_code!r}"
            )

    @property
    def status_code(self) -> int:
        return self.http_status_code or DEFAULT_STATUS_CODE

    def with_status(self, http_status_code: int | None) -> ReplyError:
        return replace(self, http_status_code=http_status_code)

    def with_reference(self, **reference_data: Any) -> ReplyError:
        return replace(self, reference_data={**self.reference_data, **reference_data})

    @classmethod
    def from_exception(cls, exc: BaseException, **overrides: Any) -> ReplyError:
        """Build from a native exception, keeping its message and traceback."""
        stack = None
        if exc.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

        code = getattr(exc, "code", None)
        status = getattr(exc, "http_status_code", None)
        fields: dict[str, Any] = {
            "message": str(exc) or type(exc).__name__,
            "http_status_code": status if is_valid_status(status) else None,
            "code": code if isinstance(code, str) else None,
            "stack": stack,
            "cause": exc,
        }
        fields.update(overrides)
        return cls(**fields)

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message}"


class ReplyErrorException(Exception):
    """Raisable wrapper for ``ReplyError``.

    Route code raises this to abandon the handler and let the fault hook
    add the error to the request's Reply.
    """

    def __init__(self, error: ReplyError):
        self.error = error
        super().__init__(str(error))


class ConfigurationError(Exception):
    """The host wired Riposte incorrectly (missing binding, frozen registry, ...)."""


class HandlerFault(Exception):
    """A handler failed while running; aborts whatever pipeline invoked it."""

    def __init__(self, handler_type: str, message: str, cause: BaseException | None = None):
        self.handler_type = handler_type
        self.cause = cause
        super().__init__(f"{handler_type}: {message}")


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def map(self, f: Callable[[T], U]) -> Result[U, Any]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[[Any], F]) -> Result[T, F]:
        return self  # type: ignore

    def and_then(self, f: Callable[[T], Result[U, Any]]) -> Result[U, Any]:
        return f(self.value)

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def map(self, f: Callable[[Any], U]) -> Result[U, E]:
        return self  # type: ignore

    def map_err(self, f: Callable[[E], F]) -> Result[Any, F]:
        return Err(f(self.error))

    def and_then(self, f: Callable[[Any], Result[U, E]]) -> Result[U, E]:
        return self  # type: ignore

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]


def raise_error(error: ReplyError) -> NoReturn:
    """Raise ``error`` so the fault hook adds it to the current Reply.

    Usage:
        if not user:
            raise_error(ReplyError("User not found", http_status_code=404))
    """
    raise ReplyErrorException(error)


def raise_result(result: Result[T, Any]) -> T:
    """Return the Ok value, or raise the Err's fault."""
    if result.is_err():
        fault = result.unwrap_err()
        if isinstance(fault, ReplyError):
            raise ReplyErrorException(fault)
        if isinstance(fault, BaseException):
            raise fault
        raise ValueError(f"Unexpected error result: {fault!r}")
    return result.unwrap()
