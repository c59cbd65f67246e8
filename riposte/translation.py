"""Translation collaborator interface and an in-memory catalog implementation."""
from __future__ import annotations

from typing import Any, Iterator, Mapping, Protocol, runtime_checkable


@runtime_checkable
class Translator(Protocol):
    def translate(self, key: str, locale: str | None = None, /, **params: Any) -> str: ...


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class CatalogTranslator:
    """Translator over nested per-locale catalogs.

    Usage:
        translator = CatalogTranslator({
            "en": {"server": {"400": {"notfound": "The page {page} could not be found"}}},
        })
        translator.translate("server.400.notfound", "en-US", page="/x")

    Lookup tries the exact locale, then its language (``en-US`` -> ``en``), then
    ``default_locale``. Unknown keys come back unchanged.
    """

    def __init__(self, catalogs: Mapping[str, Mapping[str, Any]], default_locale: str = "en"):
        self.catalogs = {locale.lower(): catalog for locale, catalog in catalogs.items()}
        self.default_locale = default_locale.lower()

    def _candidates(self, locale: str | None) -> Iterator[str]:
        if locale:
            locale = locale.lower().replace("_", "-")
            yield locale
            if "-" in locale:
                yield locale.split("-", 1)[0]
        yield self.default_locale

    @staticmethod
    def _lookup(catalog: Mapping[str, Any] | None, key: str) -> Any:
        if not catalog:
            return None
        if key in catalog:
            return catalog[key]
        node: Any = catalog
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node

    def translate(self, key: str, locale: str | None = None, /, **params: Any) -> str:
        for candidate in self._candidates(locale):
            text = self._lookup(self.catalogs.get(candidate), key)
            if isinstance(text, str):
                try:
                    return text.format_map(_KeepMissing(params))
                except (ValueError, IndexError, AttributeError):
                    return text
        return key


def parse_accept_language(header: str | None) -> str | None:
    """Highest-weighted language tag from an ``Accept-Language`` header."""
    if not header:
        return None
    best: tuple[float, str] | None = None
    for part in header.split(","):
        tag, _, params = part.strip().partition(";")
        tag = tag.strip()
        if not tag or tag == "*":
            continue
        weight = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                weight = float(params[2:])
            except ValueError:
                continue
        if weight <= 0:
            continue
        if best is None or weight > best[0]:
            best = (weight, tag)
    return best[1] if best else None
