"""Tests for query validation and the wire form of search results."""

from __future__ import annotations

import json

import pytest

from career_agent.models import (
    ChatMessage,
    JobPosting,
    SalaryRange,
    ScoredJob,
    SearchQuery,
    search_payload,
)
from tests.fakes import make_posting


class TestSearchQueryFromDict:
    def test_full_arguments(self) -> None:
        query = SearchQuery.from_dict({
            "q": "受付",
            "location": "東京",
            "skills": ["接客", "カウンセリング"],
            "seniority": "junior",
        })

        assert query == SearchQuery(
            q="受付", location="東京", skills=("接客", "カウンセリング"), seniority="junior",
        )

    def test_none_and_empty_mean_no_filters(self) -> None:
        assert SearchQuery.from_dict(None) == SearchQuery()
        assert SearchQuery.from_dict({}) == SearchQuery()

    def test_unknown_keys_are_ignored(self) -> None:
        assert SearchQuery.from_dict({"q": "受付", "salary": 400}) == SearchQuery(q="受付")

    def test_empty_skill_list_is_kept(self) -> None:
        """An explicit empty list differs from an absent one but scores the same."""
        assert SearchQuery.from_dict({"skills": []}).skills == ()

    @pytest.mark.parametrize(
        "args",
        [
            ["受付"],
            "受付",
            {"skills": "接客"},
            {"skills": ["接客", 3]},
            {"q": 42},
            {"location": ["東京"]},
            {"seniority": "lead"},
            {"seniority": 1},
        ],
    )
    def test_rejects_malformed_arguments(self, args) -> None:
        with pytest.raises(ValueError):
            SearchQuery.from_dict(args)

    def test_to_dict_omits_unset_fields(self) -> None:
        query = SearchQuery(location="東京", skills=("接客",))
        assert query.to_dict() == {"location": "東京", "skills": ["接客"]}
        assert SearchQuery().to_dict() == {}


class TestJobPosting:
    def test_from_dict_minimal(self) -> None:
        posting = JobPosting.from_dict(
            {"id": 7, "title": "受付", "company": "Test", "location": "東京"}
        )
        assert posting.id == "7"
        assert posting.skills == ()
        assert posting.seniority is None
        assert posting.salary_negotiation is None

    def test_from_dict_nested_fields(self, catalog) -> None:
        posting = catalog[0]
        assert posting.salary_negotiation == SalaryRange(min=300, max=400, average=350)
        assert posting.placement_history[0].year == 2024
        assert "面接対策資料" in posting.interview_prep.materials

    def test_from_dict_rejects_unknown_seniority(self) -> None:
        with pytest.raises(ValueError, match="seniority"):
            JobPosting.from_dict(
                {"id": "1", "title": "t", "company": "c", "location": "l", "seniority": "intern"}
            )

    def test_to_dict_uses_lists(self) -> None:
        data = make_posting(skills=("接客",), benefits=("社員割引",)).to_dict()
        assert data["skills"] == ["接客"]
        assert data["benefits"] == ["社員割引"]


class TestSearchPayload:
    def test_items_carry_score_and_posting_fields(self, catalog) -> None:
        payload = search_payload([ScoredJob(job=catalog[2], score=75)])

        item = payload["items"][0]
        assert item["id"] == "3"
        assert item["score"] == 75
        assert item["company"] == "聖心美容クリニック"
        assert item["salary_negotiation"] == {"min": 350, "max": 450, "average": 400}

    def test_payload_is_json_serialisable(self, catalog) -> None:
        payload = search_payload([ScoredJob(job=p, score=10) for p in catalog])
        decoded = json.loads(json.dumps(payload, ensure_ascii=False))
        assert [i["id"] for i in decoded["items"]] == ["1", "2", "3", "4", "5"]

    def test_empty_results(self) -> None:
        assert search_payload([]) == {"items": []}


def test_chat_message_llm_form_drops_jobs() -> None:
    message = ChatMessage(role="assistant", content="こんにちは", jobs=[{"id": "1"}])
    assert message.to_llm() == {"role": "assistant", "content": "こんにちは"}
