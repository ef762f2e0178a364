"""FastAPI application entry point."""
from __future__ import annotations
import logging
import os

from fastapi import FastAPI

from quizbot.api import webhook
from quizbot.container import get_corpus_app_service
from quizbot.core.config import DATA_DIR, LOG_LEVEL, STORE_BACKEND
from quizbot.persistence.db import init_db

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# App creation
# ------------------------------------------------------------------
app = FastAPI(
    title="Grammar Quiz Bot API",
    description="Quiz engine driven by a chat transport gateway",
    version="1.0.0",
)


# ------------------------------------------------------------------
# Startup: schema, then corpus
# ------------------------------------------------------------------
@app.on_event("startup")
def on_startup():
    if STORE_BACKEND == "sqlite":
        init_db()

    if DATA_DIR.startswith(("http://", "https://")) or os.path.exists(DATA_DIR):
        get_corpus_app_service().run_import(DATA_DIR)
    else:
        logger.warning("Corpus source %s not found, starting with the stored questions only", DATA_DIR)


# ------------------------------------------------------------------
# Routers
# ------------------------------------------------------------------
app.include_router(webhook.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("quizbot.main:app", host="0.0.0.0", port=8000)
