"""Tests for the tutor prompt builder."""

from talkback.prompts import CORRECTION_STYLES, RESPONSE_LENGTHS, TONES, PromptSettings, generate_prompt


def test_default_preset():
    prompt = generate_prompt()
    assert prompt.startswith("You are a friendly and patient English conversation tutor.")
    assert TONES["warm"] in prompt
    assert CORRECTION_STYLES["gently"] in prompt
    assert "concise and natural" in prompt


def test_preset_options_are_applied():
    prompt = generate_prompt(PromptSettings(
        tone="formal",
        correction_style="strictly",
        response_length="detailed",
        conversation_style="structured",
    ))
    assert TONES["formal"] in prompt
    assert CORRECTION_STYLES["strictly"] in prompt
    assert RESPONSE_LENGTHS["detailed"] in prompt
    assert "detailed and comprehensive" in prompt


def test_unknown_options_fall_back_to_defaults():
    assert generate_prompt(PromptSettings(tone="sarcastic", response_length="epic")) == generate_prompt()


def test_custom_prompt_is_used_verbatim():
    settings = PromptSettings(mode="custom", custom_prompt="  Talk like a pirate.  ")
    assert generate_prompt(settings) == "Talk like a pirate."


def test_blank_custom_prompt_falls_back_to_preset():
    assert generate_prompt(PromptSettings(mode="custom", custom_prompt="   ")) == generate_prompt()
