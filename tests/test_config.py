"""Tests for settings loading, saving and the avatar selection helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from career_agent.config import (
    DEFAULT_SETTINGS,
    SETTINGS_PATH,
    clear_avatar_id,
    get_avatar_id,
    get_env,
    load_settings,
    save_settings,
    set_avatar_id,
)


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nope.yaml")
        assert settings == DEFAULT_SETTINGS
        assert settings is not DEFAULT_SETTINGS

        settings["llm"]["model"] = "changed"
        assert DEFAULT_SETTINGS["llm"]["model"] == "gpt-4o-mini"

    def test_partial_file_merged_over_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("llm:\n  temperature: 0.2\naudio:\n  show_subtitles: false\n", encoding="utf-8")

        settings = load_settings(path)

        assert settings["llm"]["temperature"] == 0.2
        assert settings["llm"]["model"] == "gpt-4o-mini"
        assert settings["audio"]["show_subtitles"] is False
        assert settings["audio"]["speech_rate"] == 1.0
        assert settings["stt"] == DEFAULT_SETTINGS["stt"]

    def test_rejects_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_settings(path)

    def test_bundled_settings_file_matches_defaults(self) -> None:
        assert load_settings(SETTINGS_PATH) == DEFAULT_SETTINGS


class TestSaveSettings:
    def test_round_trip_keeps_unicode_and_header(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "settings.yaml"
        settings = load_settings(tmp_path / "nope.yaml")
        settings["avatar"]["avatar_id"] = "アバター"

        save_settings(settings, path)

        text = path.read_text(encoding="utf-8")
        assert text.startswith("# ====")
        assert "アバター" in text
        assert yaml.safe_load(text)["avatar"]["avatar_id"] == "アバター"

    def test_avatar_helpers(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        assert get_avatar_id(path) is None

        set_avatar_id("Anna_public_3_20240108", path)
        assert get_avatar_id(path) == "Anna_public_3_20240108"
        assert load_settings(path)["llm"] == DEFAULT_SETTINGS["llm"]

        clear_avatar_id(path)
        assert get_avatar_id(path) is None


def test_get_env_strips(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAREER_AGENT_TEST_VALUE", "  abc \n")
    assert get_env("CAREER_AGENT_TEST_VALUE") == "abc"
    assert get_env("CAREER_AGENT_MISSING_VALUE", "fallback") == "fallback"


class TestAudioSettings:
    def test_audio_section_holds_only_applied_options(self) -> None:
        """Every audio option has a consumer: the avatar voice rate and the subtitle line."""
        assert set(DEFAULT_SETTINGS["audio"]) == {"speech_rate", "show_subtitles"}

    def test_speech_rate_reaches_the_avatar_session(self, settings) -> None:
        from career_agent.session import ConversationSession

        settings["audio"]["speech_rate"] = 1.3
        session = ConversationSession.from_settings(settings, agent=None)

        assert session.voice_rate == 1.3

    def test_legacy_capture_keys_do_not_break_loading(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("audio:\n  echo_cancellation: false\n  speech_rate: 0.9\n", encoding="utf-8")

        settings = load_settings(path)

        assert settings["audio"]["speech_rate"] == 0.9
        assert settings["audio"]["show_subtitles"] is True
