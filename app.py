"""Streamlit UI for the beauty-clinic career agent."""
from __future__ import annotations

import os
import sys
from pathlib import Path

import requests
import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from career_agent.avatar import HeyGenClient, HeyGenError
from career_agent.config import (
    clear_avatar_id,
    get_env,
    load_settings,
    save_settings,
    set_avatar_id,
)
from career_agent.log import get_logger
from career_agent.render import job_card_html, subtitle_html

log = get_logger(__name__)

_CSS = """
<style>
[data-testid="stAppViewContainer"] {
    background: linear-gradient(135deg, #fdf2f8 0%, #f3e5f5 45%, #eef2ff 100%);
}
[data-testid="stSidebar"] {
    background: rgba(255,255,255,0.55);
    backdrop-filter: blur(16px);
    border-right: 1px solid rgba(255,255,255,0.3);
}
.job-card {
    padding: 0.9rem 1.1rem;
    margin-bottom: 0.8rem;
    background: rgba(255,255,255,0.7);
    border: 1px solid rgba(219,39,119,0.2);
    border-radius: 12px;
    box-shadow: 0 4px 16px rgba(0,0,0,0.05);
}
.job-card .score { float: right; color: #db2777; font-weight: 600; }
.subtitle {
    padding: 0.5rem 0.75rem; background: rgba(0,0,0,0.65);
    color: #fff; border-radius: 8px; text-align: center;
}
</style>
"""

# ── Helpers ──────────────────────────────────────────────────────────────


def _load_env() -> dict[str, str]:
    env_path = ROOT / ".env"
    values: dict[str, str] = {}
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, _, v = line.partition("=")
                values[k.strip()] = v.strip()
    return values


def _save_env(values: dict[str, str]) -> None:
    env_path = ROOT / ".env"
    template_path = ROOT / ".env.example"

    lines: list[str] = []
    written: set[str] = set()

    if template_path.exists():
        for line in template_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and "=" in stripped:
                k, _, _ = stripped.partition("=")
                k = k.strip()
                lines.append(f"{k}={values.get(k, '')}")
                written.add(k)
            else:
                lines.append(line)

    for k, v in values.items():
        if k not in written:
            lines.append(f"{k}={v}")

    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _status() -> dict[str, bool]:
    return {
        "openai_key": bool(get_env("OPENAI_API_KEY") or _load_env().get("OPENAI_API_KEY")),
        "heygen_key": bool(get_env("HEYGEN_API_KEY") or _load_env().get("HEYGEN_API_KEY")),
    }


def _check(label: str, ok: bool) -> str:
    icon = "✅" if ok else "⬜"
    return f"{icon}  {label}"


def _new_session():
    from career_agent.llm import CareerAgent
    from career_agent.session import ConversationSession

    settings = load_settings()
    avatar = HeyGenClient()
    return ConversationSession.from_settings(
        settings,
        CareerAgent(settings=settings),
        avatar if avatar.configured else None,
    )


def _render_job(job: dict) -> None:
    st.markdown(job_card_html(job), unsafe_allow_html=True)


# ── Page: Conversation ───────────────────────────────────────────────────


def page_conversation() -> None:
    st.header("キャリア相談AI")

    session = st.session_state.get("conversation")
    show_subtitles = load_settings()["audio"].get("show_subtitles", True)

    if session is None or not session.active:
        st.write("美容クリニック業界専門のキャリアエージェントと、テキストまたは音声で相談できます。")
        if not _status()["openai_key"]:
            st.warning("OpenAI API key is not set — add it in **Settings** first.")
            return
        if st.button("相談を開始", type="primary", use_container_width=True):
            with st.spinner("セッションを開始しています…"):
                try:
                    session = _new_session()
                    session.start()
                    st.session_state["conversation"] = session
                except Exception as exc:
                    log.error("Failed to start session: %s", exc)
                    st.error(f"セッションの開始に失敗しました: {exc}")
                else:
                    st.rerun()
        return

    tab_talk, tab_jobs = st.tabs([
        "会話",
        f"求人情報 ({session.unread_jobs})" if session.unread_jobs else "求人情報",
    ])

    with tab_talk:
        if session.avatar_session:
            with st.expander("Avatar connection", expanded=False):
                st.code(
                    f"session_id: {session.avatar_session.session_id}\n"
                    f"url: {session.avatar_session.url}"
                )

        for m in session.messages:
            with st.chat_message(m.role):
                st.markdown(m.content)
                if m.jobs:
                    st.caption(f"{len(m.jobs)}件の求人を紹介しました（求人情報タブ）")

        last = session.messages[-1] if session.messages else None
        if show_subtitles and last is not None and last.role == "assistant":
            st.markdown(subtitle_html(last.content), unsafe_allow_html=True)

        audio = st.audio_input("音声で話す")
        if audio is not None and st.session_state.get("_last_audio") != audio.file_id:
            st.session_state["_last_audio"] = audio.file_id
            with st.spinner("音声を認識中…"):
                try:
                    session.send_audio(audio.getvalue(), filename=audio.name or "audio.wav")
                except ValueError as exc:
                    st.warning(str(exc))
                except Exception as exc:
                    log.error("Voice turn failed: %s", exc)
                    st.error("音声認識に失敗しました。ネットワーク接続を確認してください。")
                else:
                    st.rerun()

        prompt = st.chat_input("メッセージを入力…")
        if prompt:
            with st.spinner("考え中…"):
                try:
                    session.send_text(prompt)
                except ValueError as exc:
                    st.warning(str(exc))
                except Exception as exc:
                    log.error("Text turn failed: %s", exc)
                    st.error("応答の生成に失敗しました。")
                else:
                    st.rerun()

        if st.button("相談を終了", use_container_width=True):
            session.end()
            st.session_state.pop("conversation", None)
            st.rerun()

    with tab_jobs:
        jobs = session.latest_jobs()
        if not jobs:
            st.info("まだ求人は紹介されていません。")
        for job in jobs:
            _render_job(job)
        if session.unread_jobs and st.button("既読にする"):
            session.mark_jobs_viewed()
            st.rerun()


# ── Page: Chat ───────────────────────────────────────────────────────────


def page_chat() -> None:
    st.header("Chat")
    st.caption("Free-form assistant chat, streamed token by token.")

    history: list[dict] = st.session_state.setdefault("chat_history", [])
    for m in history:
        with st.chat_message(m["role"]):
            st.markdown(m["content"])

    prompt = st.chat_input("Ask anything…")
    if not prompt:
        return

    history.append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        try:
            from career_agent.llm import stream_chat

            text = st.write_stream(stream_chat(history))
            history.append({"role": "assistant", "content": text})
        except Exception as exc:
            log.error("Chat stream failed: %s", exc)
            history.pop()
            st.error(str(exc))


# ── Page: Settings ───────────────────────────────────────────────────────


def page_settings() -> None:
    st.header("Settings")

    tab_keys, tab_avatar, tab_audio = st.tabs(["API Keys", "Avatar", "Audio"])

    with tab_keys:
        env = _load_env()
        with st.form("api_keys"):
            openai_key = st.text_input(
                "OpenAI API key *",
                value=env.get("OPENAI_API_KEY", ""),
                type="password",
                help="Conversation, job narration and speech recognition.",
            )
            heygen_key = st.text_input(
                "HeyGen API key",
                value=env.get("HEYGEN_API_KEY", ""),
                type="password",
                help="Optional — without it the agent runs text-only.",
            )
            if st.form_submit_button("Save API Keys", type="primary", use_container_width=True):
                if not openai_key:
                    st.error("OpenAI API key is required.")
                else:
                    env.update({"OPENAI_API_KEY": openai_key, "HEYGEN_API_KEY": heygen_key})
                    _save_env(env)
                    os.environ["OPENAI_API_KEY"] = openai_key
                    os.environ["HEYGEN_API_KEY"] = heygen_key
                    st.success("API keys saved!")

    with tab_avatar:
        settings = load_settings()
        current = settings["avatar"].get("avatar_id")
        listing = HeyGenClient().list_avatars()
        st.caption(f"Source: {listing.source} · {len(listing.avatars)} interactive avatar(s)")
        if current:
            st.info(f"Current avatar: `{current}`")

        options = [a["avatar_id"] for a in listing.avatars]
        names = {a["avatar_id"]: a.get("name") or a.get("avatar_name") or a["avatar_id"] for a in listing.avatars}
        choice = st.selectbox(
            "Avatar",
            options,
            index=options.index(current) if current in options else 0,
            format_func=lambda a: names.get(a, a),
        ) if options else None

        c1, c2 = st.columns(2)
        with c1:
            if st.button("Use this avatar", type="primary", use_container_width=True, disabled=not choice):
                set_avatar_id(choice)
                st.success(f"Avatar set to {names.get(choice, choice)}")
        with c2:
            if st.button("Clear avatar", use_container_width=True):
                clear_avatar_id()
                st.success("Avatar cleared — the default avatar will be used.")

        with st.expander("Diagnostics", expanded=False):
            client = HeyGenClient()
            if not client.configured:
                st.caption("Add a HeyGen API key to inspect voices and sessions.")
            elif st.button("Check HeyGen account", use_container_width=True):
                conversation = st.session_state.get("conversation")
                try:
                    report = client.diagnostics(conversation.session_id if conversation else None)
                except (HeyGenError, requests.RequestException) as exc:
                    log.error("HeyGen diagnostics failed: %s", exc)
                    st.error(f"HeyGen request failed: {exc}")
                else:
                    st.markdown(
                        f"**Voices:** {report.voices} "
                        f"({len(report.japanese_voices)} Japanese)"
                    )
                    if report.sessions:
                        st.table([
                            {"session_id": s.session_id, "status": s.status, "avatar": s.avatar_id or ""}
                            for s in report.sessions
                        ])
                    else:
                        st.caption("No open streaming sessions.")
                    if report.current is not None:
                        st.code(f"this conversation: {report.current.get('status', 'unknown')}")

    with tab_audio:
        settings = load_settings()
        audio = settings["audio"]
        with st.form("audio_settings"):
            speech_rate = st.slider("Speech rate", 0.5, 1.5, float(audio["speech_rate"]), 0.1)
            show_subtitles = st.checkbox("Show subtitles", value=audio["show_subtitles"])
            language = st.selectbox(
                "Recognition language",
                ["ja-JP", "en-US"],
                index=0 if settings["stt"]["language"] == "ja-JP" else 1,
            )
            if st.form_submit_button("Save", type="primary", use_container_width=True):
                settings["audio"].update({
                    "speech_rate": speech_rate,
                    "show_subtitles": show_subtitles,
                })
                settings["stt"]["language"] = language
                save_settings(settings)
                st.success("Settings saved!")


# ── Main ─────────────────────────────────────────────────────────────────


def _inject_css() -> None:
    st.markdown(_CSS, unsafe_allow_html=True)


def _sidebar_status() -> None:
    with st.sidebar:
        st.divider()
        s = _status()
        st.markdown("**Status**")
        st.markdown(_check("OpenAI API key", s["openai_key"]))
        st.markdown(_check("HeyGen API key (avatar)", s["heygen_key"]))

        session = st.session_state.get("conversation")
        if session is not None:
            st.markdown(f"Session: `{session.state}`")


def _wrap(page):
    def run() -> None:
        _inject_css()
        _sidebar_status()
        page()

    run.__name__ = page.__name__
    return run


pages = [
    st.Page(_wrap(page_conversation), title="Conversation", icon="💬", url_path="conversation", default=True),
    st.Page(_wrap(page_chat), title="Chat", icon="✍️", url_path="chat"),
    st.Page(_wrap(page_settings), title="Settings", icon="⚙️", url_path="settings"),
]

nav = st.navigation(pages)
nav.run()
