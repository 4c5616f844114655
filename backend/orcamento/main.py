"""
Orçamento Costing API
FastAPI backend for commercial-construction budgets: composition costing,
BDI, taxes, DRE and viability classification.
"""
import logging
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# .env must be loaded before config reads the environment
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orcamento import config
from orcamento.api.budget_routes import router as budget_router
from orcamento.services.budget_repository import InMemoryBudgetRepository
from orcamento.services.logging_config import setup_logging
from orcamento.services.middleware import RequestTimingMiddleware
from orcamento.services.report_engine import ReportEngine

setup_logging(level=config.LOG_LEVEL, json_output=config.LOG_JSON)
logger = logging.getLogger("orcamento-api")

_PROCESS_START = time.monotonic()
APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.budget_repository = InMemoryBudgetRepository()
    app.state.report_engine = ReportEngine()
    logger.info("Budget repository and costing engines ready.")
    yield
    logger.info("Shutting down.")


app = FastAPI(
    title="Orçamento Costing API",
    version=APP_VERSION,
    description="Budget costing, BDI, taxes and DRE for commercial construction",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

app.include_router(budget_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": APP_VERSION,
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("orcamento.main:app", host="0.0.0.0", port=8000, reload=True)
