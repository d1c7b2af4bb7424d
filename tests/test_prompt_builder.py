"""Tests for studio prompt assembly"""

from jewelshot.db.models import GenerationMode
from jewelshot.services.prompt_builder import (
    BASE_NEGATIVE_PROMPT,
    PRESETS,
    build_advanced_prompt,
    build_prompt,
    build_quick_prompt,
    build_selective_prompt,
)

PREAMBLE = "CRITICAL PRESERVATION RULES:"


def test_every_preset_keeps_preservation_preamble():
    for preset_id in PRESETS:
        built = build_quick_prompt("ring", "women", preset_id=preset_id)
        assert built.prompt.startswith(PREAMBLE)
        assert "ring" in built.prompt
        assert built.negative_prompt == BASE_NEGATIVE_PROMPT


def test_quick_prompt_is_deterministic():
    first = build_quick_prompt("necklace", "men", preset_id="luxury", aspect_ratio="1:1")
    second = build_quick_prompt("necklace", "men", preset_id="luxury", aspect_ratio="1:1")
    assert first == second
    assert "Aspect ratio 1:1" in first.prompt


def test_unknown_preset_falls_back_to_white_background():
    fallback = build_quick_prompt("ring", "women", preset_id="does-not-exist")
    assert fallback == build_quick_prompt("ring", "women", preset_id="white-background")
    assert "pure white" in fallback.prompt


def test_gender_changes_styling():
    women = build_quick_prompt("bracelet", "women", preset_id="on-model")
    men = build_quick_prompt("bracelet", "men", preset_id="on-model")
    assert "female model" in women.prompt
    assert "Professional male model" in men.prompt
    assert "female" not in men.prompt
    assert women.prompt != men.prompt


def test_selective_defaults():
    built = build_selective_prompt("earrings", "women")
    assert "MODEL STYLE: professional" in built.prompt
    assert "LOCATION: studio" in built.prompt
    assert "MOOD: natural" in built.prompt


def test_selective_uses_choices():
    built = build_selective_prompt("earrings", "women", model="editorial", location="beach", mood="romantic")
    assert "LOCATION: beach" in built.prompt
    assert "MOOD: romantic" in built.prompt


def test_advanced_appends_user_negative():
    built = build_advanced_prompt("ring", "men", custom_prompt="moody dark velvet", custom_negative_prompt="fingers")
    assert "moody dark velvet" in built.prompt
    assert built.prompt.startswith(PREAMBLE)
    assert built.negative_prompt == f"{BASE_NEGATIVE_PROMPT}, fingers"


def test_advanced_without_text_uses_default_description():
    built = build_advanced_prompt("ring", "men", custom_prompt="   ", custom_negative_prompt="  ")
    assert "High-quality professional jewelry photography" in built.prompt
    assert built.negative_prompt == BASE_NEGATIVE_PROMPT


def test_build_prompt_dispatches_by_mode():
    assert build_prompt(GenerationMode.QUICK, "ring", "women") == build_quick_prompt("ring", "women")
    assert build_prompt(GenerationMode.SELECTIVE, "ring", "women", mood="bold") == build_selective_prompt(
        "ring", "women", mood="bold"
    )
    assert build_prompt(
        GenerationMode.ADVANCED, "ring", "women", custom_prompt="on silk"
    ) == build_advanced_prompt("ring", "women", custom_prompt="on silk")
