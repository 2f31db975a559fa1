import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .identity import USER_ID_HEADER
from .logging_config import bind_user_id, configure_logging, reset_user_id
from .progression_routes import router as progression_router
from .study_routes import router as study_router


configure_logging()
logger = logging.getLogger(__name__)


class UserContextMiddleware(BaseHTTPMiddleware):
    """Tag log records produced while serving a request with its X-User-Id."""

    async def dispatch(self, request: Request, call_next):
        token = bind_user_id(request.headers.get(USER_ID_HEADER, ""))
        try:
            return await call_next(request)
        finally:
            reset_user_id(token)


app = FastAPI(title="Godsaeng Study Tracker", version="0.1.0")
app.add_middleware(UserContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(study_router)
app.include_router(progression_router)


@app.get("/healthz")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/healthz/database")
def database_health() -> Dict[str, Any]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {
        "status": "ok",
        "dialect": engine.dialect.name,
        "pool": get_pool_snapshot(engine),
    }
