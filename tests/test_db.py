import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.models.schemas import MatchModel
from app.services.db import NO_EMBEDDINGS, MongoRepository
from app.utils.exceptions import DatabaseError
from conftest import make_resume


def _cursor(docs):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


@pytest.fixture
def collections():
    return MagicMock(), MagicMock(), MagicMock()


@pytest.fixture
def mongo_repo(collections):
    resumes, jobs, matches = collections
    return MongoRepository(resumes=resumes, jobs=jobs, matches=matches)


class _FakeMatches:
    def __init__(self, docs=None):
        self.docs = [d.model_dump() if hasattr(d, "model_dump") else d for d in docs or []]

    async def insert_many(self, docs):
        self.docs.extend(docs)

    async def delete_many(self, query):
        self.docs = [d for d in self.docs if any(d.get(k) != v for k, v in query.items())]


class _FakeJobs:
    """A jobs collection whose pointer switch can be slowed down per run."""

    def __init__(self, doc, delays):
        self.doc = doc
        self.delays = delays

    async def find_one_and_update(self, query, update, projection=None, return_document=None):
        new_run = update["$set"]["match_run_id"]
        await asyncio.sleep(self.delays.get(new_run, 0))
        before = dict(self.doc)
        self.doc.update(update["$set"])
        return before


def _records(run_id, *resume_ids):
    return [MatchModel(match_id=f"{run_id}-{r}", job_id="j1", resume_id=r, run_id=run_id, score=80)
            for r in resume_ids]


class TestReplaceMatches:
    """The versioned swap of a job's match set"""

    def test_insert_then_switch_pointer_then_cleanup_previous_run(self, mongo_repo, collections):
        _, jobs, matches = collections
        order = []
        matches.insert_many = AsyncMock(side_effect=lambda *a, **k: order.append("insert"))

        def switch(*args, **kwargs):
            order.append("switch")
            return {"match_run_id": "run-1"}

        jobs.find_one_and_update = AsyncMock(side_effect=switch)
        matches.delete_many = AsyncMock(side_effect=lambda *a, **k: order.append("cleanup"))

        records = [MatchModel(match_id="m1", job_id="j1", resume_id="r1", run_id="run-2", score=90)]
        asyncio.run(mongo_repo.replace_matches("j1", "run-2", records))

        assert order == ["insert", "switch", "cleanup"]
        args, kwargs = jobs.find_one_and_update.call_args
        assert args == ({"job_id": "j1"}, {"$set": {"match_run_id": "run-2"}})
        assert kwargs["return_document"] == ReturnDocument.BEFORE
        matches.delete_many.assert_called_once_with({"job_id": "j1", "run_id": "run-1"})
        inserted = matches.insert_many.call_args[0][0]
        assert inserted[0]["run_id"] == "run-2"

    def test_empty_set_skips_insert(self, mongo_repo, collections):
        _, jobs, matches = collections
        matches.insert_many = AsyncMock()
        jobs.find_one_and_update = AsyncMock(return_value={"match_run_id": "run-2"})
        matches.delete_many = AsyncMock()

        asyncio.run(mongo_repo.replace_matches("j1", "run-3", []))

        matches.insert_many.assert_not_called()
        jobs.find_one_and_update.assert_called_once()
        matches.delete_many.assert_called_once_with({"job_id": "j1", "run_id": "run-2"})

    def test_first_run_deletes_nothing(self, mongo_repo, collections):
        _, jobs, matches = collections
        matches.insert_many = AsyncMock()
        jobs.find_one_and_update = AsyncMock(return_value={})
        matches.delete_many = AsyncMock()

        asyncio.run(mongo_repo.replace_matches("j1", "run-1", _records("run-1", "r1")))

        matches.delete_many.assert_not_called()

    @pytest.mark.parametrize("slow_run", ["run-a", "run-b"])
    def test_concurrent_runs_keep_the_live_set(self, slow_run):
        matches = _FakeMatches(_records("run-old", "r1", "r2"))
        jobs = _FakeJobs({"job_id": "j1", "match_run_id": "run-old"}, delays={slow_run: 0.05})
        repo = MongoRepository(resumes=MagicMock(), jobs=jobs, matches=matches)

        async def both():
            await asyncio.gather(
                repo.replace_matches("j1", "run-a", _records("run-a", "r1", "r2")),
                repo.replace_matches("j1", "run-b", _records("run-b", "r2")),
            )

        asyncio.run(both())

        live = jobs.doc["match_run_id"]
        assert live == slow_run
        assert [d["resume_id"] for d in matches.docs if d["run_id"] == live]
        assert {d["run_id"] for d in matches.docs} == {live}


class TestGetMatches:

    def test_reads_current_run_only(self, mongo_repo, collections):
        _, jobs, matches = collections
        jobs.find_one = AsyncMock(return_value={"match_run_id": "run-2"})
        matches.find.return_value = _cursor([
            {"match_id": "m1", "job_id": "j1", "resume_id": "r1", "run_id": "run-2", "score": 90},
        ])

        result = asyncio.run(mongo_repo.get_matches("j1"))

        assert [m.match_id for m in result] == ["m1"]
        assert matches.find.call_args[0][0] == {"job_id": "j1", "run_id": "run-2"}

    def test_no_pointer_means_no_matches(self, mongo_repo, collections):
        _, jobs, matches = collections
        jobs.find_one = AsyncMock(return_value={})

        assert asyncio.run(mongo_repo.get_matches("j1")) == []
        matches.find.assert_not_called()


class TestResumes:

    def test_list_without_embeddings_uses_projection(self, mongo_repo, collections):
        resumes, _, _ = collections
        cursor = _cursor([make_resume("r1").model_dump()])
        resumes.find.return_value = cursor

        result = asyncio.run(mongo_repo.list_resumes(limit=5, offset=10, with_embeddings=False))

        assert [r.resume_id for r in result] == ["r1"]
        assert resumes.find.call_args[0][1] == NO_EMBEDDINGS
        cursor.skip.assert_called_once_with(10)
        cursor.limit.assert_called_once_with(5)

    def test_query_is_escaped(self, mongo_repo, collections):
        resumes, _, _ = collections
        resumes.find.return_value = _cursor([])

        asyncio.run(mongo_repo.list_resumes(q="c++"))

        query = resumes.find.call_args[0][0]
        assert query["$or"][0]["original_name"]["$regex"] == r"c\+\+"

    def test_delete_reports_whether_found(self, mongo_repo, collections):
        resumes, _, _ = collections
        resumes.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
        assert asyncio.run(mongo_repo.delete_resume("missing")) is False

        resumes.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
        assert asyncio.run(mongo_repo.delete_resume("r1")) is True

    def test_driver_errors_become_database_errors(self, mongo_repo, collections):
        resumes, _, _ = collections
        resumes.find_one = AsyncMock(side_effect=PyMongoError("connection refused"))

        with pytest.raises(DatabaseError) as exc_info:
            asyncio.run(mongo_repo.get_resume("r1"))
        assert exc_info.value.details["collection"] == "resumes"
