"""Speech-to-text via the OpenAI Whisper transcription API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from openai import APIConnectionError, APITimeoutError

from career_agent.llm import make_client
from career_agent.log import get_logger
from career_agent.retry import retry

log = get_logger(__name__)

# Whisper reports no confidence; callers get a fixed value
DEFAULT_CONFIDENCE = 0.95

_CONTENT_TYPES: dict[str, str] = {
    "webm": "audio/webm",
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "ogg": "audio/ogg",
}


@dataclass
class Transcription:
    text: str
    confidence: float = DEFAULT_CONFIDENCE


def _whisper_language(lang: str) -> str:
    """Browser-style tags ("ja-JP") to the ISO-639-1 code Whisper expects."""
    return lang.split("-", 1)[0].lower() if lang else "ja"


@retry(max_attempts=2, base_delay=1.0, retryable=(APIConnectionError, APITimeoutError))
def _create_transcription(client: Any, **kwargs: Any) -> Any:
    return client.audio.transcriptions.create(**kwargs)


def transcribe(
    audio: bytes,
    filename: str = "audio.webm",
    lang: str = "ja-JP",
    client: Any = None,
    model: str = "whisper-1",
) -> Transcription:
    if not audio:
        raise ValueError("Audio file is required")

    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "webm"
    content_type = _CONTENT_TYPES.get(ext, "application/octet-stream")
    client = client or make_client()

    log.debug("Transcribing %.2f MB of %s", len(audio) / (1024 * 1024), content_type)
    result = _create_transcription(
        client,
        file=(filename, audio, content_type),
        model=model,
        language=_whisper_language(lang),
        response_format="json",
    )
    text = (result.text or "").strip()
    log.info("Transcribed %d characters", len(text))
    return Transcription(text=text)
