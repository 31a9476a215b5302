"""
Research Settings Tests

Tests for clamping validation and the JSON import/export round trip.
"""

import json

import pytest

from marginalia.research.research_settings import (
    DEFAULT_MAX_SECTIONS,
    DEFAULT_TOKEN_LIMIT,
    ResearchMode,
    ResearchSettings,
    export_settings,
    import_settings,
    validate_settings,
)


def test_defaults():
    settings = validate_settings(None)

    assert settings.token_limit_per_agent == DEFAULT_TOKEN_LIMIT == 75_000
    assert settings.max_sections == DEFAULT_MAX_SECTIONS == 20
    assert settings.research_mode == ResearchMode.FULL
    assert all(
        settings.enabled_agents.is_enabled(key) for key in ("search", "evidence", "analysis", "context")
    )


def test_oversized_token_limit_is_clamped():
    """tokenLimitPerAgent far above the maximum is clamped, not rejected."""
    settings = validate_settings({"tokenLimitPerAgent": 999_999_999})
    assert settings.token_limit_per_agent == 150_000
    print("[PASS] Token limit clamped to 150,000")


def test_numeric_ranges_are_clamped():
    assert validate_settings({"tokenLimitPerAgent": 10}).token_limit_per_agent == 25_000
    assert validate_settings({"maxSections": 100}).max_sections == 50
    assert validate_settings({"maxSections": 1}).max_sections == 5
    assert validate_settings({"maxSections": "12"}).max_sections == 12
    assert validate_settings({"max_sections": 30}).max_sections == 30


def test_missing_or_unusable_numbers_use_defaults():
    assert validate_settings({"maxSections": 0}).max_sections == 20
    assert validate_settings({"maxSections": None}).max_sections == 20
    assert validate_settings({"tokenLimitPerAgent": "lots"}).token_limit_per_agent == 75_000


def test_partial_enabled_agents():
    settings = validate_settings({"enabledAgents": {"evidence": False}})

    assert settings.enabled_agents.evidence is False
    assert settings.enabled_agents.search is True
    assert settings.enabled_agents.analysis is True
    assert settings.enabled_agents.context is True


def test_legacy_book_search_key():
    settings = validate_settings({"enabledAgents": {"bookSearch": False}})
    assert settings.enabled_agents.search is False
    assert not settings.enabled_agents.is_enabled("search")


def test_invalid_enabled_agents_uses_defaults():
    settings = validate_settings({"enabledAgents": "all of them"})
    assert settings.enabled_agents.is_enabled("context")


def test_research_mode():
    assert validate_settings({"researchMode": "QUICK"}).research_mode == ResearchMode.QUICK
    assert validate_settings({"researchMode": "deep"}).research_mode == ResearchMode.FULL


def test_export_uses_camel_case():
    exported = json.loads(export_settings(ResearchSettings()))

    assert set(exported) == {"tokenLimitPerAgent", "maxSections", "enabledAgents", "researchMode"}
    assert exported["enabledAgents"] == {"search": True, "evidence": True, "analysis": True, "context": True}
    assert exported["researchMode"] == "full"


def test_round_trip():
    """validate(export(s)) == validate(s)."""
    settings = validate_settings(
        {
            "tokenLimitPerAgent": 40_000,
            "maxSections": 7,
            "enabledAgents": {"analysis": False},
            "researchMode": "quick",
        }
    )

    assert validate_settings(export_settings(settings)) == validate_settings(settings)
    assert import_settings(export_settings(settings)) == settings


def test_import_invalid_json():
    with pytest.raises(ValueError, match="Invalid JSON format for research settings"):
        import_settings("{not json")


def test_import_non_object_uses_defaults():
    assert import_settings("[1, 2, 3]") == ResearchSettings()


def test_validate_settings_accepts_model_instance():
    settings = ResearchSettings(max_sections=8)
    assert validate_settings(settings) == settings
