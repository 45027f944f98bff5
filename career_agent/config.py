"""Load settings and env configuration."""
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from career_agent.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"

DEFAULT_SETTINGS: dict[str, Any] = {
    "llm": {
        "model": "gpt-4o-mini",
        "chat_model": "gpt-4o-mini",
        "temperature": 0.7,
        "max_tokens": 1000,
        "followup_max_tokens": 800,
    },
    "stt": {
        "model": "whisper-1",
        "language": "ja-JP",
    },
    "avatar": {
        "avatar_id": None,
        "quality": "high",
        "task_mode": "repeat",
    },
    "audio": {
        "speech_rate": 1.0,
        "show_subtitles": True,
    },
}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """Settings from YAML merged over DEFAULT_SETTINGS; defaults if the file is absent."""
    path = path or SETTINGS_PATH
    if not path.exists():
        log.debug("No settings file at %s, using defaults", path)
        return copy.deepcopy(DEFAULT_SETTINGS)

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")

    return _merge(DEFAULT_SETTINGS, data)


def save_settings(settings: dict[str, Any], path: Path | None = None) -> Path:
    path = path or SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    header = (
        "# ============================================================\n"
        "# Career agent settings (LLM, speech-to-text, avatar, audio)\n"
        "# API keys belong in .env, not here\n"
        "# ============================================================\n\n"
    )
    yaml_str = yaml.dump(settings, default_flow_style=False, sort_keys=False, allow_unicode=True)
    path.write_text(header + yaml_str, encoding="utf-8")
    log.info("Settings written → %s", path)
    return path


def get_avatar_id(path: Path | None = None) -> str | None:
    return load_settings(path)["avatar"].get("avatar_id") or None


def set_avatar_id(avatar_id: str, path: Path | None = None) -> None:
    settings = load_settings(path)
    settings["avatar"]["avatar_id"] = avatar_id
    save_settings(settings, path)


def clear_avatar_id(path: Path | None = None) -> None:
    """Forget the selected avatar so the vendor default is used."""
    settings = load_settings(path)
    settings["avatar"]["avatar_id"] = None
    save_settings(settings, path)
