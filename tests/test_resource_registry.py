"""Tests for the caregiver registry."""

import json

import pytest

from carebook.services.errors import NotFoundError
from carebook.services.resource_registry import Caregiver, ResourceRegistry, normalize_name


class TestNormalizeName:
    """Tests for lookup key normalization."""

    @pytest.mark.parametrize("name", ["Lucía", "lucia", " LUCIA ", "LUCÍA"])
    def test_variants_share_key(self, name):
        assert normalize_name(name) == "lucia"

    def test_inner_whitespace_collapsed(self):
        assert normalize_name("María   José\tRuiz") == "maria jose ruiz"

    def test_empty(self):
        assert normalize_name("") == ""
        assert normalize_name(None) == ""


class TestResourceRegistry:
    """Tests for ResourceRegistry."""

    def test_get_resolves_variants(self, registry):
        assert registry.get("LUCIA GOMEZ").calendar_id == "lucia@group.calendar.google.com"
        assert registry.get(" marta ").name == "Marta"

    def test_unknown_name(self, registry):
        with pytest.raises(NotFoundError) as exc_info:
            registry.get("Carmen")

        assert exc_info.value.code == "caregiver_not_found"
        assert exc_info.value.status_code == 404
        assert exc_info.value.suggestion

    def test_names_keep_configured_spelling(self, registry):
        assert registry.names() == ["Lucía Gómez", "Marta"]
        assert len(registry) == 2

    def test_duplicate_keys_rejected(self):
        with pytest.raises(ValueError, match="same lookup key"):
            ResourceRegistry(
                [
                    Caregiver(name="Lucía", calendar_id="a@group.calendar.google.com"),
                    Caregiver(name="LUCIA", calendar_id="b@group.calendar.google.com"),
                ]
            )

    def test_missing_calendar_rejected(self):
        with pytest.raises(ValueError):
            ResourceRegistry([Caregiver(name="Marta", calendar_id="")])

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            ResourceRegistry([Caregiver(name="  ", calendar_id="x@group.calendar.google.com")])


class TestLoading:
    """Tests for loading caregivers from configuration."""

    def test_from_mapping_accepts_both_keys(self):
        registry = ResourceRegistry.from_mapping(
            {
                "Lucía": {"calendarId": "lucia@cal", "email": "lucia@example.com"},
                "Marta": {"calendar_id": "marta@cal"},
            }
        )

        assert registry.get("lucia").email == "lucia@example.com"
        assert registry.get("marta").calendar_id == "marta@cal"
        assert registry.get("marta").email == ""

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "caregivers.yaml"
        path.write_text(
            "Lucía:\n  calendarId: lucia@cal\n  email: lucia@example.com\n",
            encoding="utf-8",
        )

        registry = ResourceRegistry.load(path)

        assert registry.names() == ["Lucía"]

    def test_load_json_file(self, tmp_path):
        path = tmp_path / "caregivers.json"
        path.write_text(json.dumps({"Marta": {"calendarId": "marta@cal"}}), encoding="utf-8")

        registry = ResourceRegistry.load(path)

        assert registry.get("MARTA").calendar_id == "marta@cal"

    def test_inline_wins_over_file(self, tmp_path):
        path = tmp_path / "caregivers.json"
        path.write_text(json.dumps({"Marta": {"calendarId": "marta@cal"}}), encoding="utf-8")

        registry = ResourceRegistry.load(path, inline='{"Ana": {"calendarId": "ana@cal"}}')

        assert registry.names() == ["Ana"]

    def test_missing_file_is_empty(self, tmp_path):
        registry = ResourceRegistry.load(tmp_path / "nope.json")

        assert len(registry) == 0
        assert list(registry) == []
