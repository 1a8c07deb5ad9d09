import re
from typing import Any, Dict, List, Optional

import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from app.models.schemas import JobModel, MatchModel, ResumeModel
from app.utils.config import MONGO_DETAILS, DB_NAME
from app.utils.exceptions import DatabaseError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

try:
    client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS)
    db = client[DB_NAME]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
resumes_coll = db["resumes"]
jobs_coll = db["jobs"]
matches_coll = db["matches"]

NO_EMBEDDINGS = {"_id": 0, "chunks.embedding": 0}


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    specs = [
        (resumes_coll, [("resume_id", ASCENDING)], True),
        (resumes_coll, [("created_at", DESCENDING)], False),
        (jobs_coll, [("job_id", ASCENDING)], True),
        (jobs_coll, [("is_active", ASCENDING), ("created_at", DESCENDING)], False),
        (matches_coll, [("job_id", ASCENDING), ("run_id", ASCENDING), ("score", DESCENDING)], False),
        (matches_coll, [("match_id", ASCENDING)], True),
    ]
    for coll, keys, unique in specs:
        try:
            await coll.create_index(keys, unique=unique)
            logger.debug(f"Created index on {coll.name}.{keys}")
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.debug(f"Index on {coll.name}.{keys} already exists")
            else:
                logger.warning(f"Could not create index on {coll.name}.{keys}: {e}")

    logger.info("Database index initialization completed")


def _text_filter(q: str, fields: List[str]) -> Dict[str, Any]:
    pattern = {"$regex": re.escape(q), "$options": "i"}
    return {"$or": [{f: pattern} for f in fields]}


class MongoRepository:
    """Persistence for resumes, jobs and per-job match sets."""

    def __init__(self, resumes=None, jobs=None, matches=None):
        self.resumes = resumes if resumes is not None else resumes_coll
        self.jobs = jobs if jobs is not None else jobs_coll
        self.matches = matches if matches is not None else matches_coll

    async def _run(self, operation: str, collection: str, coro):
        try:
            return await coro
        except PyMongoError as e:
            logger.error(f"MongoDB {operation} on {collection} failed: {e}")
            raise DatabaseError(f"Database error during {operation}: {e}",
                                operation=operation, collection=collection, cause=e) from e

    # -------- Resumes --------
    async def insert_resume(self, resume: ResumeModel) -> None:
        await self._run("insert", "resumes", self.resumes.insert_one(resume.model_dump()))

    async def get_resume(self, resume_id: str) -> Optional[ResumeModel]:
        doc = await self._run("find", "resumes", self.resumes.find_one({"resume_id": resume_id}, {"_id": 0}))
        return ResumeModel(**doc) if doc else None

    async def update_resume(self, resume_id: str, fields: Dict[str, Any]) -> None:
        await self._run("update", "resumes",
                        self.resumes.update_one({"resume_id": resume_id}, {"$set": fields}))

    async def delete_resume(self, resume_id: str) -> bool:
        result = await self._run("delete", "resumes", self.resumes.delete_one({"resume_id": resume_id}))
        return result.deleted_count > 0

    def _resume_query(self, q: str) -> Dict[str, Any]:
        if not q:
            return {}
        return _text_filter(q, ["original_name", "metadata.name", "metadata.skills", "parsed_text"])

    async def list_resumes(self, q: str = "", limit: Optional[int] = None, offset: int = 0,
                           with_embeddings: bool = True) -> List[ResumeModel]:
        projection = {"_id": 0} if with_embeddings else NO_EMBEDDINGS
        cursor = self.resumes.find(self._resume_query(q), projection).sort(
            [("created_at", ASCENDING), ("resume_id", ASCENDING)]
        ).skip(offset)
        if limit is not None:
            cursor = cursor.limit(limit)
        docs = await self._run("find", "resumes", cursor.to_list(length=None))
        return [ResumeModel(**d) for d in docs]

    async def count_resumes(self, q: str = "") -> int:
        return await self._run("count", "resumes", self.resumes.count_documents(self._resume_query(q)))

    # -------- Jobs --------
    async def insert_job(self, job: JobModel) -> None:
        await self._run("insert", "jobs", self.jobs.insert_one(job.model_dump()))

    async def get_job(self, job_id: str) -> Optional[JobModel]:
        doc = await self._run("find", "jobs", self.jobs.find_one({"job_id": job_id}, {"_id": 0}))
        return JobModel(**doc) if doc else None

    async def update_job(self, job_id: str, fields: Dict[str, Any]) -> None:
        await self._run("update", "jobs", self.jobs.update_one({"job_id": job_id}, {"$set": fields}))

    def _job_query(self, q: str, company: str, location: str) -> Dict[str, Any]:
        query: Dict[str, Any] = {"is_active": True}
        if q:
            query.update(_text_filter(q, ["title", "company", "description", "skills"]))
        if company:
            query["company"] = {"$regex": re.escape(company), "$options": "i"}
        if location:
            query["location"] = {"$regex": re.escape(location), "$options": "i"}
        return query

    async def list_jobs(self, q: str = "", company: str = "", location: str = "",
                        limit: int = 10, offset: int = 0) -> List[JobModel]:
        cursor = self.jobs.find(self._job_query(q, company, location), NO_EMBEDDINGS).sort(
            "created_at", DESCENDING
        ).skip(offset).limit(limit)
        docs = await self._run("find", "jobs", cursor.to_list(length=None))
        return [JobModel(**d) for d in docs]

    async def count_jobs(self, q: str = "", company: str = "", location: str = "") -> int:
        return await self._run("count", "jobs", self.jobs.count_documents(self._job_query(q, company, location)))

    # -------- Matches --------
    async def replace_matches(self, job_id: str, run_id: str, matches: List[MatchModel]) -> None:
        """
        Swap the job's match set for `matches`.

        New records go in under `run_id` first, then the job's match_run_id
        pointer moves in a single update, then only the run that pointer
        named before is removed. Readers resolve the pointer, so they never
        see a partial set, and a concurrent run never deletes the live one.
        """
        if matches:
            await self._run("insert", "matches",
                            self.matches.insert_many([m.model_dump() for m in matches]))
        previous = await self._run("update", "jobs", self.jobs.find_one_and_update(
            {"job_id": job_id},
            {"$set": {"match_run_id": run_id}},
            projection={"_id": 0, "match_run_id": 1},
            return_document=ReturnDocument.BEFORE,
        ))
        previous_run = (previous or {}).get("match_run_id")
        if previous_run and previous_run != run_id:
            await self._run("delete", "matches",
                            self.matches.delete_many({"job_id": job_id, "run_id": previous_run}))

    async def get_matches(self, job_id: str) -> List[MatchModel]:
        job = await self._run("find", "jobs",
                              self.jobs.find_one({"job_id": job_id}, {"_id": 0, "match_run_id": 1}))
        if not job or not job.get("match_run_id"):
            return []
        cursor = self.matches.find({"job_id": job_id, "run_id": job["match_run_id"]}, {"_id": 0}).sort(
            [("score", DESCENDING), ("resume_id", ASCENDING)]
        )
        docs = await self._run("find", "matches", cursor.to_list(length=None))
        return [MatchModel(**d) for d in docs]


repository = MongoRepository()


def get_repository() -> MongoRepository:
    """FastAPI dependency: the MongoDB-backed repository."""
    return repository
