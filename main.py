"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import automation, portfolios, transactions
from config import settings
from database import init_db
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Upgrade the schema on startup."""
    try:
        init_db()
    except Exception:
        logger.warning("Schema migration failed on startup", exc_info=True)
    yield


app = FastAPI(
    title="Investment Automation",
    description="Scheduled, round-up and market-dip investing with a transaction ledger",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(automation.router)
app.include_router(portfolios.router)
app.include_router(transactions.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
