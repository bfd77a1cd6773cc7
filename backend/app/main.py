import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.database import engine, init_db
from app.db_schema_patch import ensure_match_columns, ensure_participant_columns
from app.routes import matches
from app.services.auto_approval_sweep import get_auto_approval_worker

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Match Adjudication API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8081",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(matches.router, prefix="/api", tags=["matches"])


@app.on_event("startup")
async def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    ensure_match_columns(engine)
    ensure_participant_columns(engine)
    get_auto_approval_worker().start()

    for r in app.routes:
        methods = getattr(r, "methods", None)
        path = getattr(r, "path", None)
        if path and methods:
            logger.debug(f"{', '.join(sorted(methods)):20} {path}")


@app.on_event("shutdown")
async def on_shutdown():
    get_auto_approval_worker().stop()


@app.get("/api/health")
def health_check():
    return {"app_name": "Match Adjudication API", "status": "healthy"}
