import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .activity_catalog import CATALOG_VERSION
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .logging_config import configure_logging
from .study_plan_routes import checklist_router, router as study_plan_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Study Planner Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(study_plan_router)
app.include_router(checklist_router)

logger.info("Backend starting with activity catalog %s", CATALOG_VERSION)


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok", "catalog_version": CATALOG_VERSION}


@app.get("/healthz/database")
def database_health() -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except (RuntimeError, SQLAlchemyError) as exc:
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {"status": "ok", "dialect": engine.dialect.name, "pool": get_pool_snapshot(engine)}
