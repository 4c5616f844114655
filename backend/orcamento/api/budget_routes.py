"""
Budget (Orçamento) API Routes

     POST   /api/budgets/calculate                  - stateless report for a posted budget
     GET    /api/budgets/next-number                - next S-/P- number for a budget type
     POST   /api/budgets                            - create with the 8 standard compositions
     GET    /api/budgets?clientName=                - list, optionally one client
     GET    /api/budgets/{id}                       - fetch snapshot
     PUT    /api/budgets/{id}                       - update header / tax config
     DELETE /api/budgets/{id}                       - delete
     POST   /api/budgets/{id}/clone                 - copy as "<name> (Cópia)"
     GET    /api/budgets/{id}/calculate             - totals + DRE + alerts
     GET    /api/budgets/{id}/dre                   - DRE only
     GET    /api/budgets/{id}/abc                   - ABC analysis per composition
     GET    /api/budgets/{id}/alerts                - viability alerts
     PUT    /api/budgets/{id}/compositions/{cid}    - rename / BDI / profit margin
     POST   /api/budgets/{id}/compositions/{cid}/items          - add validated item
     DELETE /api/budgets/{id}/compositions/{cid}/items/{iid}    - remove item
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from orcamento.api.deps import get_report_engine, get_repository
from orcamento.models.budget_schema import (
    Budget,
    BudgetCreate,
    BudgetType,
    BudgetUpdate,
    CompositionUpdate,
    LineItem,
)
from orcamento.services.budget_repository import BudgetRepository
from orcamento.services.exceptions import BudgetNotFoundError, CostingValidationError
from orcamento.services.report_engine import ReportEngine

router = APIRouter(prefix="/api/budgets", tags=["Budgets"])
logger = logging.getLogger("orcamento-api.budgets")


# ── Helpers ──────────────────────────────────────────────────────────────────

def _dump(budget: Budget) -> dict:
    return budget.model_dump(by_alias=True, mode="json")


def _load(repo: BudgetRepository, budget_id: str) -> Budget:
    try:
        return repo.get(budget_id)
    except BudgetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _invalid(e: CostingValidationError) -> HTTPException:
    logger.info(f"Rejected budget input: {e}")
    return HTTPException(status_code=422, detail=e.to_dict())


# ── Stateless calculation ────────────────────────────────────────────────────

@router.post("/calculate")
async def calculate_posted_budget(
    budget: Budget,
    engine: ReportEngine = Depends(get_report_engine),
):
    """Cost a budget snapshot without storing it."""
    try:
        return engine.build_report(budget)
    except CostingValidationError as e:
        raise _invalid(e)


@router.get("/next-number")
async def get_next_number(
    budget_type: BudgetType = BudgetType.SERVICE,
    repo: BudgetRepository = Depends(get_repository),
):
    return {"number": repo.next_number(budget_type)}


# ── CRUD ─────────────────────────────────────────────────────────────────────

@router.post("", status_code=201)
async def create_budget(
    req: BudgetCreate,
    repo: BudgetRepository = Depends(get_repository),
):
    return _dump(repo.create(req))


@router.get("")
async def list_budgets(
    client_name: Optional[str] = Query(None, alias="clientName"),
    repo: BudgetRepository = Depends(get_repository),
):
    return [_dump(b) for b in repo.list(client_name=client_name)]


@router.get("/{budget_id}")
async def get_budget(budget_id: str, repo: BudgetRepository = Depends(get_repository)):
    return _dump(_load(repo, budget_id))


@router.put("/{budget_id}")
async def update_budget(
    budget_id: str,
    req: BudgetUpdate,
    repo: BudgetRepository = Depends(get_repository),
):
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return _dump(repo.update(budget_id, changes))
    except BudgetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{budget_id}", status_code=204)
async def delete_budget(budget_id: str, repo: BudgetRepository = Depends(get_repository)):
    try:
        repo.delete(budget_id)
    except BudgetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{budget_id}/clone", status_code=201)
async def clone_budget(budget_id: str, repo: BudgetRepository = Depends(get_repository)):
    try:
        return _dump(repo.clone(budget_id))
    except BudgetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Derived views ────────────────────────────────────────────────────────────

@router.get("/{budget_id}/calculate")
async def calculate_budget(
    budget_id: str,
    repo: BudgetRepository = Depends(get_repository),
    engine: ReportEngine = Depends(get_report_engine),
):
    budget = _load(repo, budget_id)
    try:
        return engine.build_report(budget)
    except CostingValidationError as e:
        raise _invalid(e)


@router.get("/{budget_id}/dre")
async def get_dre(
    budget_id: str,
    repo: BudgetRepository = Depends(get_repository),
    engine: ReportEngine = Depends(get_report_engine),
):
    budget = _load(repo, budget_id)
    try:
        return engine.build_dre(budget)
    except CostingValidationError as e:
        raise _invalid(e)


@router.get("/{budget_id}/abc")
async def get_abc_analysis(
    budget_id: str,
    repo: BudgetRepository = Depends(get_repository),
    engine: ReportEngine = Depends(get_report_engine),
):
    budget = _load(repo, budget_id)
    try:
        return engine.build_abc(budget)
    except CostingValidationError as e:
        raise _invalid(e)


@router.get("/{budget_id}/alerts")
async def get_alerts(
    budget_id: str,
    repo: BudgetRepository = Depends(get_repository),
    engine: ReportEngine = Depends(get_report_engine),
):
    budget = _load(repo, budget_id)
    try:
        return engine.build_alerts(budget)
    except CostingValidationError as e:
        raise _invalid(e)


# ── Composition editing ──────────────────────────────────────────────────────

@router.put("/{budget_id}/compositions/{composition_id}")
async def update_composition(
    budget_id: str,
    composition_id: str,
    req: CompositionUpdate,
    repo: BudgetRepository = Depends(get_repository),
    engine: ReportEngine = Depends(get_report_engine),
):
    """Partial edit; the merged composition must pass costing validation before it is stored."""
    changes = req.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return _dump(repo.update_composition(
            budget_id, composition_id, changes, validator=engine.costing.validate_composition,
        ))
    except BudgetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CostingValidationError as e:
        raise _invalid(e)


@router.post("/{budget_id}/compositions/{composition_id}/items", status_code=201)
async def add_item(
    budget_id: str,
    composition_id: str,
    item: LineItem,
    repo: BudgetRepository = Depends(get_repository),
    engine: ReportEngine = Depends(get_report_engine),
):
    """Validate the item with the costing engine, then store it."""
    try:
        engine.costing.validate_item(item)
    except CostingValidationError as e:
        raise _invalid(e)
    try:
        return _dump(repo.add_item(budget_id, composition_id, item))
    except BudgetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{budget_id}/compositions/{composition_id}/items/{item_id}")
async def remove_item(
    budget_id: str,
    composition_id: str,
    item_id: str,
    repo: BudgetRepository = Depends(get_repository),
):
    try:
        return _dump(repo.remove_item(budget_id, composition_id, item_id))
    except BudgetNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
