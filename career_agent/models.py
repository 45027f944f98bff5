"""Data models for job postings, search queries and scored results."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Optional

Seniority = Literal["junior", "mid", "senior"]
SENIORITY_LEVELS: tuple[str, ...] = ("junior", "mid", "senior")


@dataclass(frozen=True)
class SalaryRange:
    """Negotiated annual salary in units of 10,000 yen."""

    min: int
    max: int
    average: int


@dataclass(frozen=True)
class PlacementRecord:
    year: int
    count: int


@dataclass(frozen=True)
class InterviewPrep:
    topics: tuple[str, ...] = ()
    materials: tuple[str, ...] = ()


@dataclass(frozen=True)
class JobPosting:
    id: str
    title: str
    company: str
    location: str
    url: str = ""
    description: Optional[str] = None
    seniority: Optional[Seniority] = None
    skills: tuple[str, ...] = ()
    # Display-only fields below; never used for scoring
    recruitment_page: Optional[str] = None
    is_public: bool = True
    public_agent_note: str = ""
    private_agent_note: str = ""
    required_skills: tuple[str, ...] = ()
    contract_date: Optional[str] = None
    placement_history: tuple[PlacementRecord, ...] = ()
    salary_negotiation: Optional[SalaryRange] = None
    benefits: tuple[str, ...] = ()
    interview_prep: Optional[InterviewPrep] = None
    salary_text: Optional[str] = None
    employment_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobPosting":
        salary = data.get("salary_negotiation")
        prep = data.get("interview_prep")
        seniority = data.get("seniority")
        if seniority is not None and seniority not in SENIORITY_LEVELS:
            raise ValueError(f"Posting {data.get('id')!r}: unknown seniority {seniority!r}")
        return cls(
            id=str(data["id"]),
            title=data["title"],
            company=data["company"],
            location=data["location"],
            url=data.get("url", ""),
            description=data.get("description"),
            seniority=seniority,
            skills=tuple(data.get("skills") or ()),
            recruitment_page=data.get("recruitment_page"),
            is_public=bool(data.get("is_public", True)),
            public_agent_note=data.get("public_agent_note", ""),
            private_agent_note=data.get("private_agent_note", ""),
            required_skills=tuple(data.get("required_skills") or ()),
            contract_date=data.get("contract_date"),
            placement_history=tuple(
                PlacementRecord(year=int(p["year"]), count=int(p["count"]))
                for p in data.get("placement_history") or ()
            ),
            salary_negotiation=SalaryRange(**salary) if salary else None,
            benefits=tuple(data.get("benefits") or ()),
            interview_prep=InterviewPrep(
                topics=tuple(prep.get("topics") or ()),
                materials=tuple(prep.get("materials") or ()),
            ) if prep else None,
            salary_text=data.get("salary_text"),
            employment_type=data.get("employment_type"),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly dict (tuples become lists)."""
        return _listify(asdict(self))


def _listify(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _listify(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_listify(v) for v in value]
    return value


def _optional_str(args: dict[str, Any], key: str) -> Optional[str]:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class SearchQuery:
    """search_jobs arguments; every field is optional."""

    q: Optional[str] = None
    location: Optional[str] = None
    skills: Optional[tuple[str, ...]] = None
    seniority: Optional[Seniority] = None

    @classmethod
    def from_dict(cls, args: dict[str, Any] | None) -> "SearchQuery":
        """Validate raw tool-call arguments.

        Raises ValueError on wrongly typed fields or an unknown seniority.
        Unknown keys are ignored, matching how the LLM tool schema is lenient
        about extra properties.
        """
        if args is None:
            return cls()
        if not isinstance(args, dict):
            raise ValueError(f"search arguments must be an object, got {type(args).__name__}")

        skills = args.get("skills")
        if skills is not None:
            if not isinstance(skills, list) or not all(isinstance(s, str) for s in skills):
                raise ValueError("'skills' must be a list of strings")
            skills = tuple(skills)

        seniority = _optional_str(args, "seniority")
        if seniority is not None and seniority not in SENIORITY_LEVELS:
            raise ValueError(
                f"'seniority' must be one of {', '.join(SENIORITY_LEVELS)}, got {seniority!r}"
            )

        return cls(
            q=_optional_str(args, "q"),
            location=_optional_str(args, "location"),
            skills=skills,
            seniority=seniority,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.q is not None:
            out["q"] = self.q
        if self.location is not None:
            out["location"] = self.location
        if self.skills is not None:
            out["skills"] = list(self.skills)
        if self.seniority is not None:
            out["seniority"] = self.seniority
        return out


@dataclass
class ScoredJob:
    job: JobPosting
    score: int

    def to_dict(self) -> dict[str, Any]:
        data = self.job.to_dict()
        data["score"] = self.score
        return data


def search_payload(results: list[ScoredJob]) -> dict[str, list[dict[str, Any]]]:
    """Wire form of a search result: ``{"items": [posting fields + score, ...]}``."""
    return {"items": [r.to_dict() for r in results]}


@dataclass
class ChatMessage:
    role: Literal["user", "assistant", "system"]
    content: str
    jobs: list[dict[str, Any]] = field(default_factory=list)

    def to_llm(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}
