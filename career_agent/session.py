"""One user's conversation: avatar lifecycle, voice input, agent turns."""
from __future__ import annotations

import functools
from typing import Any, Callable, Optional

import requests

from career_agent.avatar import AvatarSession, HeyGenClient, HeyGenError
from career_agent.llm import AgentReply, CareerAgent
from career_agent.log import get_logger
from career_agent.models import ChatMessage
from career_agent.stt import Transcription, transcribe

log = get_logger(__name__)

GREETING = (
    "こんにちは！美容クリニック業界専門のキャリアエージェントAIです。"
    "美容医療業界への転職をお考えですね。"
    "まずは現在のお仕事と、美容クリニックに興味を持たれたきっかけを教えていただけますか？"
)

# Recordings below this size are almost certainly a mis-click
MIN_AUDIO_BYTES = int(0.01 * 1024 * 1024)

STATES = ("idle", "created", "started", "active", "ended")


class ConversationSession:
    """Drives idle → created → started → active → ended.

    Without an avatar client the session goes straight to active and
    runs text-only; avatar failures while speaking are logged, not raised.
    """

    def __init__(
        self,
        agent: CareerAgent,
        avatar: Optional[HeyGenClient] = None,
        transcriber: Callable[..., Transcription] = transcribe,
        *,
        avatar_id: str | None = None,
        quality: str = "high",
        voice_rate: float = 1.0,
        task_mode: str = "repeat",
        language: str = "ja-JP",
        greeting: str = GREETING,
    ) -> None:
        self.agent = agent
        self.avatar = avatar
        self.transcriber = transcriber
        self.avatar_id = avatar_id
        self.quality = quality
        self.voice_rate = voice_rate
        self.task_mode = task_mode
        self.language = language
        self.greeting = greeting

        self.state = "idle"
        self.avatar_session: Optional[AvatarSession] = None
        self.messages: list[ChatMessage] = []
        self.unread_jobs = 0

    @classmethod
    def from_settings(
        cls,
        settings: dict[str, Any],
        agent: CareerAgent,
        avatar: Optional[HeyGenClient] = None,
    ) -> "ConversationSession":
        av = settings["avatar"]
        return cls(
            agent,
            avatar,
            functools.partial(transcribe, model=settings["stt"].get("model", "whisper-1")),
            avatar_id=av.get("avatar_id"),
            quality=av.get("quality", "high"),
            voice_rate=settings["audio"].get("speech_rate", 1.0),
            task_mode=av.get("task_mode", "repeat"),
            language=settings["stt"].get("language", "ja-JP"),
        )

    @property
    def active(self) -> bool:
        return self.state == "active"

    @property
    def session_id(self) -> str | None:
        return self.avatar_session.session_id if self.avatar_session else None

    def start(self) -> None:
        if self.state not in ("idle", "ended"):
            raise RuntimeError(f"Cannot start a session in state {self.state!r}")

        self.messages = []
        self.unread_jobs = 0
        if self.avatar is not None:
            try:
                self.avatar_session = self.avatar.create_session(
                    avatar_id=self.avatar_id, quality=self.quality, voice_rate=self.voice_rate,
                )
                self.state = "created"
                self.avatar.start_session(self.avatar_session.session_id)
                self.state = "started"
            except Exception:
                log.error("Avatar session could not be started (state=%s)", self.state)
                self.avatar_session = None
                self.state = "idle"
                raise

        self.state = "active"
        self.messages.append(ChatMessage(role="assistant", content=self.greeting))
        self.speak(self.greeting)
        log.info("Conversation started (avatar=%s)", self.session_id or "none")

    def speak(self, text: str) -> None:
        if self.avatar is None or not self.session_id or not text:
            return
        try:
            self.avatar.send_task(self.session_id, text, mode=self.task_mode)
        except (HeyGenError, requests.RequestException) as exc:
            log.warning("Avatar could not speak: %s", exc)

    def history(self) -> list[dict[str, str]]:
        """Prior turns in LLM form; placeholder system notices are not sent."""
        return [m.to_llm() for m in self.messages if m.role != "system"]

    def send_text(self, text: str) -> AgentReply:
        if not self.active:
            raise RuntimeError("Session is not active")
        text = (text or "").strip()
        if not text:
            raise ValueError("Input is required")

        history = self.history()
        self.messages.append(ChatMessage(role="user", content=text))
        reply = self.agent.respond(text, history)

        self.messages.append(ChatMessage(role="assistant", content=reply.text, jobs=reply.jobs))
        self.unread_jobs += len(reply.jobs)
        self.speak(reply.text)
        return reply

    def send_audio(self, audio: bytes, filename: str = "audio.webm") -> AgentReply:
        if not self.active:
            raise RuntimeError("Session is not active")
        if len(audio) < MIN_AUDIO_BYTES:
            raise ValueError("Recording too short, please speak a little longer")

        transcription = self.transcriber(audio, filename=filename, lang=self.language)
        if not transcription.text.strip():
            raise ValueError("Speech could not be recognised, please try again")
        return self.send_text(transcription.text)

    def mark_jobs_viewed(self) -> None:
        self.unread_jobs = 0

    def latest_jobs(self) -> list[dict[str, Any]]:
        for m in reversed(self.messages):
            if m.jobs:
                return m.jobs
        return []

    def end(self) -> None:
        if self.avatar is not None and self.session_id:
            try:
                self.avatar.stop_session(self.session_id)
            except (HeyGenError, requests.RequestException) as exc:
                log.warning("Avatar session %s did not stop cleanly: %s", self.session_id, exc)
        self.avatar_session = None
        self.messages = []
        self.unread_jobs = 0
        self.state = "ended"
        log.info("Conversation ended")
