"""Tests for the conversation session state machine."""

from __future__ import annotations

import pytest
import requests

from career_agent.avatar import AvatarSession, HeyGenError
from career_agent.llm import AgentReply
from career_agent.session import GREETING, MIN_AUDIO_BYTES, ConversationSession
from career_agent.stt import Transcription

LONG_AUDIO = b"\x00" * MIN_AUDIO_BYTES


class StubAgent:
    def __init__(self, replies: list[AgentReply] | None = None) -> None:
        self.replies = list(replies or [])
        self.calls: list[tuple[str, list]] = []

    def respond(self, text: str, history: list | None = None) -> AgentReply:
        self.calls.append((text, history))
        return self.replies.pop(0) if self.replies else AgentReply(text=f"re: {text}")


class StubAvatar:
    def __init__(self, fail_on: str | None = None, speak_error: Exception | None = None) -> None:
        self.fail_on = fail_on
        self.speak_error = speak_error
        self.calls: list[tuple] = []

    def create_session(self, **kwargs) -> AvatarSession:
        self.calls.append(("create", kwargs))
        if self.fail_on == "create":
            raise HeyGenError("quota exceeded", status_code=400)
        return AvatarSession(session_id="sess_1", url="wss://x", access_token="t")

    def start_session(self, session_id: str) -> dict:
        self.calls.append(("start", session_id))
        if self.fail_on == "start":
            raise HeyGenError("start failed", status_code=500)
        return {}

    def send_task(self, session_id: str, text: str, mode: str = "repeat") -> str:
        self.calls.append(("speak", text, mode))
        if self.speak_error is not None:
            raise self.speak_error
        return "task"

    def stop_session(self, session_id: str) -> dict:
        self.calls.append(("stop", session_id))
        if self.fail_on == "stop":
            raise requests.ConnectionError("gone")
        return {}


def _jobs(*ids: str) -> AgentReply:
    return AgentReply(text="求人です", data={"items": [{"id": i, "score": 30} for i in ids]})


class TestTextOnly:
    def test_start_greets(self) -> None:
        session = ConversationSession(StubAgent())
        assert session.state == "idle"

        session.start()

        assert session.active
        assert session.session_id is None
        assert [(m.role, m.content) for m in session.messages] == [("assistant", GREETING)]

    def test_turn_passes_prior_history(self) -> None:
        agent = StubAgent()
        session = ConversationSession(agent, greeting="hello")
        session.start()

        session.send_text("  受付の仕事  ")
        session.send_text("東京です")

        (first_text, first_history), (second_text, second_history) = agent.calls
        assert first_text == "受付の仕事"
        assert first_history == [{"role": "assistant", "content": "hello"}]
        assert second_text == "東京です"
        assert second_history == [
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "受付の仕事"},
            {"role": "assistant", "content": "re: 受付の仕事"},
        ]
        assert len(session.messages) == 5

    def test_jobs_attached_and_counted(self) -> None:
        session = ConversationSession(StubAgent([_jobs("1", "5"), AgentReply(text="ok"), _jobs("3")]))
        session.start()

        session.send_text("受付")
        assert session.messages[-1].jobs == [{"id": "1", "score": 30}, {"id": "5", "score": 30}]
        assert session.unread_jobs == 2

        session.send_text("ありがとう")
        assert [j["id"] for j in session.latest_jobs()] == ["1", "5"]

        session.send_text("六本木")
        assert session.unread_jobs == 3
        assert [j["id"] for j in session.latest_jobs()] == ["3"]

        session.mark_jobs_viewed()
        assert session.unread_jobs == 0

    def test_system_messages_are_not_sent(self) -> None:
        from career_agent.models import ChatMessage

        agent = StubAgent()
        session = ConversationSession(agent, greeting="hi")
        session.start()
        session.messages.append(ChatMessage(role="system", content="接続中…"))

        session.send_text("こんにちは")

        assert agent.calls[0][1] == [{"role": "assistant", "content": "hi"}]

    def test_send_before_start(self) -> None:
        session = ConversationSession(StubAgent())
        with pytest.raises(RuntimeError, match="not active"):
            session.send_text("hello")
        with pytest.raises(RuntimeError):
            session.send_audio(LONG_AUDIO)

    def test_empty_text_rejected(self) -> None:
        agent = StubAgent()
        session = ConversationSession(agent)
        session.start()
        with pytest.raises(ValueError):
            session.send_text("   ")
        assert agent.calls == []

    def test_cannot_start_twice(self) -> None:
        session = ConversationSession(StubAgent())
        session.start()
        with pytest.raises(RuntimeError):
            session.start()

    def test_end_and_restart(self) -> None:
        session = ConversationSession(StubAgent([_jobs("1")]))
        session.start()
        session.send_text("受付")

        session.end()
        assert session.state == "ended"
        assert session.messages == []
        assert session.unread_jobs == 0
        with pytest.raises(RuntimeError):
            session.send_text("まだいますか")

        session.start()
        assert session.active
        assert len(session.messages) == 1


class TestAudio:
    def test_transcript_becomes_a_turn(self) -> None:
        seen = []

        def transcriber(audio, filename, lang):
            seen.append((len(audio), filename, lang))
            return Transcription(text="看護師の求人を探しています")

        agent = StubAgent()
        session = ConversationSession(agent, transcriber=transcriber, language="ja-JP")
        session.start()

        reply = session.send_audio(LONG_AUDIO, filename="rec.webm")

        assert seen == [(MIN_AUDIO_BYTES, "rec.webm", "ja-JP")]
        assert agent.calls[0][0] == "看護師の求人を探しています"
        assert reply.text == "re: 看護師の求人を探しています"

    def test_short_recording_rejected(self) -> None:
        def transcriber(*args, **kwargs):
            raise AssertionError("should not transcribe")

        session = ConversationSession(StubAgent(), transcriber=transcriber)
        session.start()
        with pytest.raises(ValueError, match="too short"):
            session.send_audio(LONG_AUDIO[:-1])

    def test_empty_transcript_rejected(self) -> None:
        agent = StubAgent()
        session = ConversationSession(
            agent, transcriber=lambda audio, filename, lang: Transcription(text="  ")
        )
        session.start()
        with pytest.raises(ValueError, match="recognised"):
            session.send_audio(LONG_AUDIO)
        assert agent.calls == []


class TestWithAvatar:
    def test_lifecycle(self) -> None:
        avatar = StubAvatar()
        session = ConversationSession(
            StubAgent(), avatar, avatar_id="Anna", quality="medium", voice_rate=1.2, task_mode="talk",
        )

        session.start()
        session.send_text("こんにちは")
        session.end()

        assert avatar.calls == [
            ("create", {"avatar_id": "Anna", "quality": "medium", "voice_rate": 1.2}),
            ("start", "sess_1"),
            ("speak", GREETING, "talk"),
            ("speak", "re: こんにちは", "talk"),
            ("stop", "sess_1"),
        ]
        assert session.state == "ended"
        assert session.session_id is None

    @pytest.mark.parametrize("step", ["create", "start"])
    def test_failed_start_resets_to_idle(self, step: str) -> None:
        session = ConversationSession(StubAgent(), StubAvatar(fail_on=step))

        with pytest.raises(HeyGenError):
            session.start()

        assert session.state == "idle"
        assert session.avatar_session is None
        assert session.messages == []

    @pytest.mark.parametrize(
        "error", [HeyGenError("busy", status_code=503), requests.Timeout("slow")]
    )
    def test_speak_failure_does_not_break_turn(self, error: Exception) -> None:
        session = ConversationSession(StubAgent(), StubAvatar(speak_error=error))
        session.start()

        reply = session.send_text("受付")

        assert reply.text == "re: 受付"
        assert session.messages[-1].content == "re: 受付"

    def test_stop_failure_still_ends(self) -> None:
        session = ConversationSession(StubAgent(), StubAvatar(fail_on="stop"))
        session.start()
        session.end()
        assert session.state == "ended"


def test_from_settings(settings) -> None:
    settings["avatar"].update({"avatar_id": "Wayne_20240711", "quality": "low", "task_mode": "talk"})
    settings["audio"]["speech_rate"] = 0.8
    settings["stt"]["language"] = "en-US"

    session = ConversationSession.from_settings(settings, StubAgent())

    assert session.avatar is None
    assert session.avatar_id == "Wayne_20240711"
    assert session.quality == "low"
    assert session.task_mode == "talk"
    assert session.voice_rate == 0.8
    assert session.language == "en-US"
    assert session.transcriber.keywords == {"model": "whisper-1"}
