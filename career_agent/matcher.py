"""Score and rank catalog postings against a search_jobs query."""
from __future__ import annotations

import random
from typing import Iterable, Optional

from career_agent.log import get_logger
from career_agent.models import JobPosting, ScoredJob, SearchQuery

log = get_logger(__name__)

# Tokens that mark a fully remote position, in the query and the posting alike
REMOTE_TOKENS: tuple[str, ...] = ("リモート", "remote")

LOCATION_POINTS = 30
REMOTE_POINTS = 40
SKILL_POINTS = 20
SENIORITY_POINTS = 25
TITLE_POINTS = 30
DESCRIPTION_POINTS = 15
COMPANY_POINTS = 10

DEFAULT_LIMIT = 3
FALLBACK_SCORE = 10


def _normalize(s: str | None) -> str:
    return (s or "").lower()


def _location_score(job: JobPosting, location: str) -> int:
    wanted = _normalize(location)
    job_loc = _normalize(job.location)
    score = 0
    if wanted in job_loc:
        score += LOCATION_POINTS
    # Stacks with the substring match above: a remote query can earn both.
    if any(token in wanted and token in job_loc for token in REMOTE_TOKENS):
        score += REMOTE_POINTS
    return score


def _skills_score(job: JobPosting, skills: Iterable[str]) -> int:
    job_skills = [_normalize(s) for s in job.skills]
    if not job_skills:
        return 0
    matched = [
        skill for skill in skills
        if any(_normalize(skill) in js for js in job_skills)
    ]
    return SKILL_POINTS * len(matched)


def _keyword_score(job: JobPosting, q: str) -> int:
    term = _normalize(q)
    score = 0
    if term in _normalize(job.title):
        score += TITLE_POINTS
    if job.description and term in _normalize(job.description):
        score += DESCRIPTION_POINTS
    if term in _normalize(job.company):
        score += COMPANY_POINTS
    return score


def score_job(job: JobPosting, query: SearchQuery) -> int:
    """Additive relevance score of one posting; depends on nothing else in the catalog."""
    score = 0
    if query.location:
        score += _location_score(job, query.location)
    if query.skills is not None:
        score += _skills_score(job, query.skills)
    if query.seniority and job.seniority == query.seniority:
        score += SENIORITY_POINTS
    if query.q:
        score += _keyword_score(job, query.q)
    return score


class JobMatcher:
    """Ranks a read-only catalog against search queries.

    The catalog is copied into a tuple at construction and never modified,
    so one matcher can serve concurrent callers. ``rng`` drives the no-match
    fallback sample; pass a seeded ``random.Random`` for reproducible runs.
    """

    def __init__(
        self,
        catalog: Iterable[JobPosting],
        rng: Optional[random.Random] = None,
        *,
        limit: int = DEFAULT_LIMIT,
        fallback_score: int = FALLBACK_SCORE,
    ) -> None:
        self.catalog: tuple[JobPosting, ...] = tuple(catalog)
        self.rng = rng or random.Random()
        self.limit = limit
        self.fallback_score = fallback_score

    def score(self, job: JobPosting, query: SearchQuery) -> int:
        return score_job(job, query)

    def search(self, query: SearchQuery) -> list[ScoredJob]:
        scored = [ScoredJob(job=j, score=score_job(j, query)) for j in self.catalog]
        # sorted() is stable, so equal scores keep catalog order
        ranked = sorted((s for s in scored if s.score > 0), key=lambda s: -s.score)
        if ranked:
            result = ranked[: self.limit]
            log.info(
                "Scored %d postings → %d matched, returning %d",
                len(self.catalog), len(ranked), len(result),
            )
            return result
        return self._fallback()

    def _fallback(self) -> list[ScoredJob]:
        """Random sample so the user never sees an empty result list."""
        k = min(self.limit, len(self.catalog))
        sample = self.rng.sample(self.catalog, k)
        log.info("No posting matched — returning %d random postings", k)
        return [ScoredJob(job=j, score=self.fallback_score) for j in sample]
