"""Status Code Message Tables

Each well-known status code maps to a ``(translation key, literal message)``
pair. Factories emit the key when a translator is configured, so the message
is localized when the Reply is serialized rather than when the error is
created.
"""

StatusMessage = tuple[str, str]

GENERIC_SERVER_ERROR: StatusMessage = ("server.500.generic", "An internal server error has occurred.")


# =============================================================================
# Redirection (3xx)
# =============================================================================

REDIRECTION_MESSAGES: dict[int, StatusMessage] = {
    300: ("server.300.multipleChoices", "Multiple Choices"),
    301: ("server.301.movedPermanently", "Moved Permanently"),
    302: ("server.302.found", "Found"),
    304: ("server.304.notModified", "Not Modified"),
    305: ("server.305.useProxy", "Use Proxy"),
    307: ("server.307.temporaryRedirect", "Temporary Redirect"),
    308: ("server.308.permanentRedirect", "Permanent Redirect"),
}


# =============================================================================
# Client (4xx)
# =============================================================================

BAD_REQUEST = 400
UNAUTHORIZED = 401
PAYMENT_REQUIRED = 402
FORBIDDEN = 403
NOT_FOUND = 404
CONFLICT = 409

CLIENT_ERROR_MESSAGES: dict[int, StatusMessage] = {
    BAD_REQUEST: ("server.400.badRequest", "Bad request"),
    UNAUTHORIZED: ("server.400.unauthorized", "Unauthorized"),
    PAYMENT_REQUIRED: ("server.400.paymentRequired", "Payment required"),
    FORBIDDEN: ("server.400.forbidden", "Forbidden"),
    NOT_FOUND: ("server.400.notfound", "Not found"),
    CONFLICT: ("server.400.conflict", "Conflict"),
}


# =============================================================================
# Server (5xx)
# =============================================================================

INTERNAL_SERVER_ERROR = 500

SERVER_ERROR_MESSAGES: dict[int, StatusMessage] = {
    INTERNAL_SERVER_ERROR: GENERIC_SERVER_ERROR,
}


def _pick(entry: StatusMessage, translatable: bool) -> str:
    key, literal = entry
    return key if translatable else literal


def message_for(table: dict[int, StatusMessage], status: int, translatable: bool) -> str | None:
    """Key (``translatable``) or literal message for ``status``; None when the table lacks it."""
    entry = table.get(status)
    if entry is None:
        return None
    return _pick(entry, translatable)


def generic_message(translatable: bool) -> str:
    return _pick(GENERIC_SERVER_ERROR, translatable)


def known_statuses() -> frozenset[int]:
    return frozenset(REDIRECTION_MESSAGES) | frozenset(CLIENT_ERROR_MESSAGES) | frozenset(SERVER_ERROR_MESSAGES)
