"""HTML fragments for the Streamlit pages.

Everything interpolated here comes from the catalog or the LLM, so it is
escaped before it reaches ``unsafe_allow_html``.
"""
from __future__ import annotations

import html
from typing import Any

SUBTITLE_LIMIT = 120


def _esc(value: Any) -> str:
    return html.escape(str(value if value is not None else ""), quote=True)


def subtitle_html(text: str, limit: int = SUBTITLE_LIMIT) -> str:
    return f'<div class="subtitle">{_esc(text[:limit])}</div>'


def job_card_html(job: dict[str, Any]) -> str:
    """One job card: score badge, title, company, location, salary, benefits, link."""
    benefits = " / ".join(job.get("benefits") or [])
    link = job.get("recruitment_page") or job.get("url") or ""
    return (
        f'<div class="job-card">'
        f'<span class="score">{_esc(job.get("score", 0))} pt</span>'
        f'<strong>{_esc(job.get("title"))}</strong> / {_esc(job.get("company"))}<br>'
        f'<span style="color:#666">{_esc(job.get("location"))} · {_esc(job.get("salary_text"))}</span><br>'
        f'<span style="font-size:0.9rem">{_esc(job.get("description"))}</span><br>'
        f'<span style="font-size:0.85rem;color:#9d174d">{_esc(benefits)}</span><br>'
        f'<a href="{_esc(link)}" target="_blank">募集ページ</a>'
        f'</div>'
    )
