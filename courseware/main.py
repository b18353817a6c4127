import argparse
import logging

import uvicorn

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courseware.core.config import settings
from courseware.db import base  # noqa: F401  registers every model on the metadata
from courseware.db import session as db_session
from courseware.db.base_class import Base
from courseware.api.v1.api import api_router

# --- Logging ---
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# --- Application ---
app = FastAPI(
    title="Courseware API",
    openapi_url="/api/v1/openapi.json",
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


cors_origins = sorted({o for o in map(_sanitize_origin, settings.BACKEND_CORS_ORIGINS) if o})
logger.info("CORS origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup():
    logger.info("Creating database tables if needed...")
    Base.metadata.create_all(bind=db_session.engine)
    logger.info("Database tables are ready.")


@app.get("/")
def read_root():
    return {"message": "Welcome to the Courseware API!"}


def run(argv: list[str] | None = None) -> None:
    """Serve the API with uvicorn (``python -m courseware.main --port 8000``)."""
    parser = argparse.ArgumentParser(description="Courseware API server")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    args = parser.parse_args(argv)

    # The app object is passed directly; `uvicorn courseware.main:app --reload` for autoreload.
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
