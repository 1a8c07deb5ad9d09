from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.utils.logging_config import configure_for_environment, get_logger

# logging is configured before the routers import their modules' loggers
configure_for_environment()

from app.middleware.error_handlers import RequestContextMiddleware, register_exception_handlers  # noqa: E402
from app.routers import jobs, resumes, search  # noqa: E402
from app.services.db import DB_NAME, init_indexes  # noqa: E402
from app.utils.config import EMBEDDING_BACKEND, EMBEDDING_DIMENSION  # noqa: E402

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Resume Matcher API {VERSION} starting: db={DB_NAME}, "
                f"embeddings={EMBEDDING_BACKEND} ({EMBEDDING_DIMENSION} dims)")
    try:
        await init_indexes()
    except Exception as e:
        # the API can serve without indexes, only slower
        logger.warning(f"Index initialization failed, continuing without it: {e}")
    yield
    logger.info("Resume Matcher API shutting down")


app = FastAPI(title="Resume Matcher API", version=VERSION, lifespan=lifespan)

register_exception_handlers(app)
app.add_middleware(RequestContextMiddleware, slow_request_threshold=2.0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Also answers HEAD for load balancer probes"""
    return {"message": "Resume Matcher API", "version": VERSION, "status": "ok"}


@app.get("/health")
@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": VERSION,
        "embedding_backend": EMBEDDING_BACKEND,
    }


app.include_router(resumes.router, prefix="/api/resumes", tags=["resumes"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(search.router, prefix="/api/search", tags=["search"])
