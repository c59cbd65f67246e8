"""Tests for the catalog translator and Accept-Language parsing."""
import pytest

from riposte import CatalogTranslator, Translator
from riposte.translation import parse_accept_language


class TestCatalogTranslator:
    def test_nested_key_with_params(self, translator):
        assert translator.translate("server.400.notfound", "en", page="/a") == "The page /a could not be found"

    def test_region_falls_back_to_language(self, translator):
        assert translator.translate("server.400.notfound", "fr_CA", page="/a") == "La page /a est introuvable"

    def test_missing_locale_entry_falls_back_to_default(self, translator):
        assert translator.translate("server.400.forbidden", "fr") == "The page is forbidden"

    def test_unknown_key_is_returned(self, translator):
        assert translator.translate("Plain message", "en") == "Plain message"

    def test_missing_param_is_left_in_place(self, translator):
        assert translator.translate("server.400.notfound", "en") == "The page {page} could not be found"

    def test_flat_keys(self):
        translator = CatalogTranslator({"de": {"greeting": "Hallo {name}"}}, default_locale="de")

        assert translator.translate("greeting", name="Welt") == "Hallo Welt"

    def test_params_named_key_and_locale(self):
        translator = CatalogTranslator({"en": {"dup": "{key} taken ({locale})"}})

        assert translator.translate("dup", "en", key="email", locale="en-GB") == "email taken (en-GB)"

    def test_satisfies_protocol(self, translator):
        assert isinstance(translator, Translator)


class TestAcceptLanguage:
    @pytest.mark.parametrize(
        "header, expected",
        [
            (None, None),
            ("", None),
            ("fr", "fr"),
            ("en-US,en;q=0.9,fr;q=0.8", "en-US"),
            ("de;q=0.5, fr-CH;q=0.9", "fr-CH"),
            ("*;q=1, es;q=0.1", "es"),
            ("en;q=abc, it;q=0.2", "it"),
            ("fr;q=0", None),
            ("de;q=0.0, nl;q=0.3", "nl"),
        ],
    )
    def test_parse(self, header, expected):
        assert parse_accept_language(header) == expected
