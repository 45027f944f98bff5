#!/usr/bin/env python3
"""Terminal entry point: talk to the career agent or run a job search."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from career_agent.config import get_env, load_settings
from career_agent.log import configure_logging, get_logger

log = get_logger(__name__)


def _search(args: argparse.Namespace) -> int:
    from career_agent.catalog import default_catalog
    from career_agent.matcher import JobMatcher
    from career_agent.models import SearchQuery, search_payload

    query = SearchQuery(
        q=args.q,
        location=args.location,
        skills=tuple(args.skill) if args.skill else None,
        seniority=args.seniority,
    )
    results = JobMatcher(default_catalog()).search(query)
    if args.json:
        print(json.dumps(search_payload(results), ensure_ascii=False, indent=2))
        return 0
    for r in results:
        print(f"[{r.score:>3}] {r.job.title} @ {r.job.company} ({r.job.location})")
    return 0


def _chat(args: argparse.Namespace) -> int:
    if not get_env("OPENAI_API_KEY"):
        print()
        print("  OPENAI_API_KEY is not set. Add it to .env first.")
        print()
        return 1

    from career_agent.llm import CareerAgent
    from career_agent.session import ConversationSession

    settings = load_settings()
    session = ConversationSession.from_settings(settings, CareerAgent(settings=settings))
    session.start()
    print(f"\nagent> {session.messages[-1].content}\n")

    try:
        while True:
            try:
                text = input("you> ").strip()
            except EOFError:
                break
            if text in ("/quit", "/exit"):
                break
            if not text:
                continue
            try:
                reply = session.send_text(text)
            except Exception as exc:
                log.error("Turn failed: %s", exc)
                continue
            print(f"\nagent> {reply.text}\n")
            for job in reply.jobs:
                print(f"  • [{job['score']}] {job['title']} @ {job['company']} — {job.get('salary_text') or ''}")
            if reply.jobs:
                print()
    except KeyboardInterrupt:
        print()
    finally:
        session.end()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Beauty-clinic career agent")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (debug, info, warning, ...)")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("chat", help="Text conversation with the agent (default)")

    search = sub.add_parser("search", help="Run search_jobs against the catalog")
    search.add_argument("--q", help="Keyword matched against title, description and company")
    search.add_argument("--location", help="Work location, e.g. 東京 or リモート")
    search.add_argument("--skill", action="append", help="Skill tag; repeat for several")
    search.add_argument("--seniority", choices=["junior", "mid", "senior"])
    search.add_argument("--json", action="store_true", help="Print the raw {items: [...]} payload")

    args = parser.parse_args(argv)
    if args.log_level:
        configure_logging(args.log_level)
    if args.command == "search":
        return _search(args)
    return _chat(args)


if __name__ == "__main__":
    sys.exit(main())
