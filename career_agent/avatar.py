"""HeyGen streaming-avatar API: session lifecycle and speak tasks.

Only the REST side lives here. The real-time media connection (LiveKit)
is established by the client using the url and token from create_session.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import requests

from career_agent.config import get_env
from career_agent.log import get_logger
from career_agent.retry import retry

log = get_logger(__name__)

BASE_URL = "https://api.heygen.com"

# Used when the API is unavailable or lists no interactive avatars
KNOWN_INTERACTIVE_AVATARS: list[dict[str, Any]] = [
    {"avatar_id": "Kristin_public_3_20240108", "name": "Kristin", "is_interactive": True},
    {"avatar_id": "Anna_public_3_20240108", "name": "Anna", "is_interactive": True},
    {"avatar_id": "Susan_public_2_20240328", "name": "Susan", "is_interactive": True},
    {"avatar_id": "Wayne_20240711", "name": "Wayne", "is_interactive": True},
    {"avatar_id": "josh_lite3_20230714", "name": "Josh", "is_interactive": True},
]


class HeyGenError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class AvatarSession:
    session_id: str
    url: str
    access_token: str


@dataclass
class SessionInfo:
    session_id: str
    status: str
    created_at: Optional[str] = None
    avatar_id: Optional[str] = None
    avatar_name: Optional[str] = None
    quality: Optional[str] = None
    is_interactive: Optional[bool] = None


@dataclass
class AvatarListing:
    avatars: list[dict[str, Any]]
    source: str


@dataclass
class AvatarDiagnostics:
    voices: int
    japanese_voices: list[dict[str, Any]]
    sessions: list[SessionInfo]
    current: Optional[dict[str, Any]] = None


def _is_interactive(avatar: dict[str, Any]) -> bool:
    return bool(
        avatar.get("is_interactive")
        or avatar.get("type") == "interactive"
        or avatar.get("is_streaming")
        or "streaming" in (avatar.get("capabilities") or [])
    )


def _is_japanese(voice: dict[str, Any]) -> bool:
    lang = (voice.get("language") or "").lower()
    return "japanese" in lang or "ja" in lang


def _error_message(response: requests.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or default
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or default
    return default


def _client_error(exc: BaseException) -> bool:
    """Configuration and 4xx errors will not succeed on another attempt."""
    if not isinstance(exc, HeyGenError):
        return False
    return exc.status_code is None or exc.status_code < 500


class HeyGenClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = BASE_URL,
        timeout: float = 15,
    ) -> None:
        self.api_key = api_key if api_key is not None else get_env("HEYGEN_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @retry(
        max_attempts=3,
        base_delay=1.0,
        retryable=(requests.ConnectionError, requests.Timeout, HeyGenError),
        giveup=_client_error,
    )
    def _call(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        error: str = "HeyGen request failed",
    ) -> dict[str, Any]:
        if not self.api_key:
            raise HeyGenError("HeyGen API key not configured")

        headers = {"X-Api-Key": self.api_key}
        if payload is not None:
            headers["Content-Type"] = "application/json"

        r = requests.request(
            method,
            f"{self.base_url}{path}",
            json=payload,
            params=params,
            headers=headers,
            timeout=self.timeout,
        )
        if not r.ok:
            message = _error_message(r, error)
            log.error("HeyGen %s %s → %d: %s", method, path, r.status_code, message)
            raise HeyGenError(message, status_code=r.status_code)
        return r.json()

    # ── Catalog ──────────────────────────────────────────────────────────

    def list_avatars(self) -> AvatarListing:
        """Interactive avatars, falling back to a known list rather than failing."""
        if not self.configured:
            return AvatarListing(list(KNOWN_INTERACTIVE_AVATARS), "fallback")

        try:
            data = self._call("GET", "/v2/avatars", params={"is_streaming": "true"})
            avatars = (data.get("data") or {}).get("avatars") or data.get("avatars") or []
            if avatars:
                return AvatarListing(avatars, "streaming_api")
        except (HeyGenError, requests.RequestException) as exc:
            log.info("Streaming avatar listing unavailable (%s), trying general endpoint", exc)

        try:
            data = self._call("GET", "/v2/avatars")
        except (HeyGenError, requests.RequestException) as exc:
            log.warning("HeyGen avatar listing failed (%s), using fallback avatars", exc)
            return AvatarListing(list(KNOWN_INTERACTIVE_AVATARS), "fallback")

        avatars = (data.get("data") or {}).get("avatars") or data.get("avatars") or []
        interactive = [a for a in avatars if _is_interactive(a)]
        if not interactive:
            return AvatarListing(list(KNOWN_INTERACTIVE_AVATARS), "fallback_with_api")
        return AvatarListing(interactive, "api")

    def list_voices(self) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """All voices and the Japanese-capable subset."""
        data = self._call("GET", "/v2/voices", error="Failed to fetch voices")
        voices = (data.get("data") or {}).get("voices") or []
        return voices, [v for v in voices if _is_japanese(v)]

    # ── Session lifecycle ────────────────────────────────────────────────

    def create_session(
        self,
        avatar_id: str | None = None,
        quality: str = "high",
        voice_rate: float = 1.0,
    ) -> AvatarSession:
        payload: dict[str, Any] = {"quality": quality}
        if avatar_id and avatar_id != "default":
            payload["avatar_id"] = avatar_id
        payload["voice"] = {"rate": voice_rate}
        payload["version"] = "v2"

        data = self._call(
            "POST", "/v1/streaming.new", payload, error="Failed to create HeyGen session"
        )["data"]
        session = AvatarSession(
            session_id=data["session_id"],
            url=data["url"],
            access_token=data["access_token"],
        )
        log.info("HeyGen session created: %s (avatar=%s)", session.session_id, avatar_id or "default")
        return session

    def start_session(self, session_id: str) -> dict[str, Any]:
        if not session_id:
            raise ValueError("Session ID is required")
        data = self._call(
            "POST", "/v1/streaming.start", {"session_id": session_id},
            error="Failed to start HeyGen session",
        )
        log.info("HeyGen session started: %s", session_id)
        return data

    def stop_session(self, session_id: str) -> dict[str, Any]:
        if not session_id:
            raise ValueError("Session ID is required")
        data = self._call(
            "POST", "/v1/streaming.stop", {"session_id": session_id},
            error="Failed to stop HeyGen session",
        )
        log.info("HeyGen session stopped: %s", session_id)
        return data

    def send_task(self, session_id: str, text: str, mode: str = "repeat") -> str:
        """Make the avatar speak *text*; returns the task id."""
        if not session_id or not text:
            raise ValueError("Session ID and text are required")
        data = self._call(
            "POST", "/v1/streaming.task",
            {"session_id": session_id, "text": text, "task_type": mode},
            error="Failed to send task to HeyGen",
        )
        task_id = (data.get("data") or {}).get("task_id") or "unknown"
        log.debug("HeyGen task %s queued (%d chars)", task_id, len(text))
        return task_id

    def _raw_sessions(self) -> list[dict[str, Any]]:
        data = self._call("GET", "/v1/streaming.list", error="Failed to get session list")
        return data.get("data") or []

    def list_sessions(self) -> list[SessionInfo]:
        return [
            SessionInfo(
                session_id=s["session_id"],
                status=s.get("status", "unknown"),
                created_at=s.get("created_at"),
                avatar_id=s.get("avatar_id"),
                avatar_name=s.get("avatar_name"),
                quality=s.get("quality"),
                is_interactive=s.get("is_interactive"),
            )
            for s in self._raw_sessions()
        ]

    def get_session(self, session_id: str) -> dict[str, Any] | None:
        # The per-session endpoint 404s, so search the list instead
        if not session_id:
            raise ValueError("Session ID required")
        for s in self._raw_sessions():
            if s.get("session_id") == session_id:
                return s
        return None

    def diagnostics(self, session_id: str | None = None) -> AvatarDiagnostics:
        """Account-side view for the settings page: voices, open sessions, our session."""
        voices, japanese = self.list_voices()
        sessions = self.list_sessions()
        current = self.get_session(session_id) if session_id else None
        return AvatarDiagnostics(
            voices=len(voices),
            japanese_voices=japanese,
            sessions=sessions,
            current=current,
        )
