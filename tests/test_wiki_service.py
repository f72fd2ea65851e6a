"""Wikipedia enrichment: name variants, locale order and the never-raise contract."""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response
from services.wiki_service import NO_DESCRIPTION, WikiClient, name_variants


def _client(settings, extracts=None, errors=None):
    """extracts / errors are keyed by (locale, title) as they appear in the URL."""
    extracts = extracts or {}
    errors = errors or {}
    http = MagicMock()
    http.headers = {}

    def fake_get(url, timeout=None):
        locale = url.split("//")[1].split(".")[0]
        title = url.rsplit("/", 1)[1]
        key = (locale, title)
        if key in errors:
            raise errors[key]
        if key in extracts:
            return make_response(200, {"extract": extracts[key]})
        return make_response(404, {"type": "not_found", "title": "Not found."})

    http.get.side_effect = fake_get
    return WikiClient(settings, session=http), http


def _requested(http):
    return [c.args[0] for c in http.get.call_args_list]


class TestNameVariants:
    def test_scientific_first_then_common_names(self):
        assert name_variants("Rosa gallica", ["French rose", "Rose"]) == [
            "Rosa_gallica", "Rosa gallica", "French_rose", "French rose", "Rose",
        ]

    def test_deduplicates_and_skips_blank_aliases(self):
        assert name_variants("Rosa gallica", ["", "  ", "Rosa gallica"]) == ["Rosa_gallica", "Rosa gallica"]

    def test_empty_inputs(self):
        assert name_variants("", None) == []


class TestDescribe:
    def test_sets_user_agent(self, settings):
        client, http = _client(settings)
        assert http.headers["User-Agent"] == settings.wiki_user_agent

    def test_tries_english_before_french_for_each_variant(self, settings):
        client, http = _client(settings, extracts={("fr", "Rosa_gallica"): "Le rosier de France."})

        assert client.describe("Rosa gallica", []) == "Le rosier de France."
        assert _requested(http) == [
            "https://en.wikipedia.org/api/rest_v1/page/summary/Rosa_gallica",
            "https://fr.wikipedia.org/api/rest_v1/page/summary/Rosa_gallica",
        ]

    def test_falls_through_to_common_names(self, settings):
        client, http = _client(settings, extracts={("en", "French_rose"): "Rosa gallica is a species..."})

        assert client.describe("Rosa gallica", ["French rose"]) == "Rosa gallica is a species..."
        assert len(_requested(http)) == 5

    def test_unavailable_phrase_counts_as_empty(self, settings):
        client, _ = _client(settings, extracts={
            ("en", "Rosa_gallica"): "Other reasons this message may be displayed:",
            ("fr", "Rosa_gallica"): "",
            ("en", "Rosa%20gallica"): "A rose.",
        })
        assert client.describe("Rosa gallica") == "A rose."

    def test_request_failures_are_swallowed(self, settings):
        client, _ = _client(
            settings,
            extracts={("fr", "Rosa_gallica"): "Rosier."},
            errors={("en", "Rosa_gallica"): requests.ConnectionError("offline")},
        )
        assert client.describe("Rosa gallica") == "Rosier."

    def test_bad_json_is_swallowed(self, settings):
        client, http = _client(settings)
        http.get.side_effect = None
        http.get.return_value = make_response(200, json_error=ValueError("not json"))
        assert client.describe("Rosa gallica", ["French rose"]) == NO_DESCRIPTION

    @pytest.mark.parametrize("name,common", [("", []), ("Rosa gallica", []), ("x", None), ("   ", ["  "])])
    def test_exhaustion_returns_sentinel(self, settings, name, common):
        client, _ = _client(settings)
        assert client.describe(name, common) == NO_DESCRIPTION
