import asyncio

import pytest

from app.services.search import ask, search
from app.utils.exceptions import ValidationError
from conftest import StubEmbedder, chunk, make_resume


@pytest.fixture
def embedder():
    return StubEmbedder({"machine learning": [1.0, 0.0, 0.0]})


@pytest.fixture
def seeded(repo):
    repo.resumes["r1"] = make_resume("r1", name="Ada", chunks=[
        chunk("Built machine learning pipelines", [1, 0, 0], start=0),
        chunk("Tuned models", [0.6, 0.8, 0], start=40),
        chunk("Organised meetups", [0, 1, 0], start=80),
    ])
    repo.resumes["r2"] = make_resume("r2", name="Bob", chunks=[chunk("Accounting", [0, 1, 0])])
    repo.resumes["r3"] = make_resume("r3", name="Cy", chunks=[])
    return repo


class TestAsk:
    """Test cases for top-k retrieval across resumes"""

    def test_scores_by_mean_of_top_k(self, seeded, embedder):
        result = asyncio.run(ask("machine learning", 2, seeded, embedder))

        assert result["query"] == "machine learning"
        assert result["total_found"] == 2
        top = result["results"][0]
        assert top["resume_id"] == "r1"
        assert top["candidate_name"] == "Ada"
        assert top["score"] == 80
        assert [e["similarity"] for e in top["evidence"]] == [100, 60]
        assert top["evidence"][1]["start_offset"] == 40
        assert result["results"][1]["score"] == 0

    def test_results_truncated_to_k(self, seeded, embedder):
        result = asyncio.run(ask("machine learning", 1, seeded, embedder))

        assert [r["resume_id"] for r in result["results"]] == ["r1"]
        assert result["total_found"] == 2

    @pytest.mark.parametrize("query", ["", "   "])
    def test_empty_query(self, seeded, embedder, query):
        with pytest.raises(ValidationError):
            asyncio.run(ask(query, 5, seeded, embedder))

    def test_non_positive_k(self, seeded, embedder):
        with pytest.raises(ValidationError):
            asyncio.run(ask("machine learning", 0, seeded, embedder))


class TestSearch:
    """Test cases for best-chunk semantic search"""

    def test_min_score_filter(self, seeded, embedder):
        result = asyncio.run(search("machine learning", 10, 0, 80, seeded, embedder))

        assert [r["resume_id"] for r in result["results"]] == ["r1"]
        hit = result["results"][0]
        assert hit["score"] == 100
        assert hit["snippet"] == "Built machine learning pipelines..."
        assert hit["match_type"] == "semantic"
        assert result["min_score"] == 80
        assert result["pagination"] == {"total": 1, "limit": 10, "offset": 0, "has_more": False}

    def test_resumes_without_positive_match_have_empty_snippet(self, seeded, embedder):
        result = asyncio.run(search("machine learning", 10, 0, 0, seeded, embedder))

        by_id = {r["resume_id"]: r for r in result["results"]}
        assert set(by_id) == {"r1", "r2", "r3"}
        assert by_id["r2"]["score"] == 0
        assert by_id["r2"]["snippet"] == ""
        assert result["results"][0]["resume_id"] == "r1"

    def test_snippet_is_truncated(self, repo, embedder):
        long_text = "machine learning " * 20
        repo.resumes["r1"] = make_resume("r1", chunks=[chunk(long_text, [1, 0, 0])])

        result = asyncio.run(search("machine learning", 10, 0, 0, repo, embedder))

        snippet = result["results"][0]["snippet"]
        assert len(snippet) == 203
        assert snippet == long_text[:200] + "..."

    def test_pagination(self, seeded, embedder):
        result = asyncio.run(search("machine learning", 1, 0, 0, seeded, embedder))

        assert [r["resume_id"] for r in result["results"]] == ["r1"]
        assert result["pagination"]["has_more"] is True

        last = asyncio.run(search("machine learning", 1, 2, 0, seeded, embedder))
        assert [r["resume_id"] for r in last["results"]] == ["r3"]
        assert last["pagination"]["has_more"] is False

    def test_empty_query(self, seeded, embedder):
        with pytest.raises(ValidationError):
            asyncio.run(search("", 10, 0, 0, seeded, embedder))
