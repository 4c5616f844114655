"""FastAPI dependency injection - repository and engines."""
from fastapi import Request

from orcamento.services.budget_repository import BudgetRepository
from orcamento.services.report_engine import ReportEngine


def get_repository(request: Request) -> BudgetRepository:
    return request.app.state.budget_repository


def get_report_engine(request: Request) -> ReportEngine:
    return request.app.state.report_engine
