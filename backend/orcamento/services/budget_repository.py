"""
Budget Repository - data access layer for Budget snapshots.

The costing engines never touch a repository: routes load a snapshot from
here and hand it to the engines as a plain argument. Returned budgets are
deep copies, so callers cannot mutate stored state.
"""
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from orcamento import config
from orcamento.models.budget_schema import (
    BDIProfile,
    Budget,
    BudgetCreate,
    BudgetType,
    Composition,
    CompositionType,
    LineItem,
    TaxConfig,
)
from orcamento.services.exceptions import BudgetNotFoundError

logger = logging.getLogger("orcamento-repository")


def merge_changes(current: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply a partial update to a dumped record.

    Nested dicts (tax_config, bdi) are merged key by key, so fields the
    caller left out keep their stored values instead of model defaults.
    """
    merged = dict(current)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_changes(merged[key], value)
        else:
            merged[key] = value
    return merged


def standard_compositions() -> List[Composition]:
    """The eight standard compositions seeded on every new budget, in order."""
    compositions = []
    for order, entry in enumerate(config.STANDARD_COMPOSITIONS, start=1):
        administrative, commercial, financial, indirect_taxes = entry["bdi"]
        compositions.append(Composition(
            name=entry["name"],
            composition_type=CompositionType(entry["type"]),
            bdi=BDIProfile(
                administrative=administrative,
                commercial=commercial,
                financial=financial,
                indirect_taxes=indirect_taxes,
            ),
            order=order,
        ))
    return compositions


class BudgetRepository(ABC):
    """Abstract CRUD interface over Budget snapshots."""

    @abstractmethod
    def create(self, data: BudgetCreate) -> Budget:
        ...

    @abstractmethod
    def get(self, budget_id: str) -> Budget:
        """Return the budget or raise BudgetNotFoundError."""

    @abstractmethod
    def list(self, client_name: Optional[str] = None) -> List[Budget]:
        """All budgets, optionally only those of one client (case-insensitive)."""

    @abstractmethod
    def update(self, budget_id: str, changes: Dict[str, Any]) -> Budget:
        ...

    @abstractmethod
    def delete(self, budget_id: str) -> None:
        ...

    @abstractmethod
    def clone(self, budget_id: str) -> Budget:
        ...

    @abstractmethod
    def next_number(self, budget_type: BudgetType) -> str:
        """Peek at the number the next budget of this type will receive."""

    @abstractmethod
    def add_item(self, budget_id: str, composition_id: str, item: LineItem) -> Budget:
        ...

    @abstractmethod
    def remove_item(self, budget_id: str, composition_id: str, item_id: str) -> Budget:
        ...

    @abstractmethod
    def update_composition(
        self,
        budget_id: str,
        composition_id: str,
        changes: Dict[str, Any],
        validator: Optional[Callable[[Composition], None]] = None,
    ) -> Budget:
        """Merge changes into one composition; validator runs before anything is stored."""


class InMemoryBudgetRepository(BudgetRepository):
    """
    Process-local repository.

    Numbers follow S-NNN|YYYY (service) and P-NNN|YYYY (product) with
    independent counters.
    """

    _PREFIX = {BudgetType.SERVICE: "S", BudgetType.PRODUCT: "P"}

    def __init__(self) -> None:
        self._budgets: Dict[str, Budget] = {}
        self._counters: Dict[BudgetType, int] = {BudgetType.SERVICE: 0, BudgetType.PRODUCT: 0}
        self._lock = threading.Lock()

    # ── Helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _format_number(self, budget_type: BudgetType, counter: int) -> str:
        return f"{self._PREFIX[budget_type]}-{counter:03d}|{self._now().year}"

    def _issue_number(self, budget_type: BudgetType) -> str:
        self._counters[budget_type] += 1
        return self._format_number(budget_type, self._counters[budget_type])

    def _require(self, budget_id: str) -> Budget:
        budget = self._budgets.get(budget_id)
        if budget is None:
            raise BudgetNotFoundError("Budget", budget_id)
        return budget

    @staticmethod
    def _require_composition(budget: Budget, composition_id: str) -> Composition:
        composition = budget.find_composition(composition_id)
        if composition is None:
            raise BudgetNotFoundError("Composition", composition_id)
        return composition

    def _store(self, budget: Budget) -> Budget:
        budget.updated_at = self._now()
        self._budgets[budget.id] = budget
        return budget.model_copy(deep=True)

    # ── CRUD ───────────────────────────────────────────────────────────────

    def create(self, data: BudgetCreate) -> Budget:
        with self._lock:
            now = self._now()
            budget = Budget(
                number=self._issue_number(data.budget_type),
                name=data.name,
                budget_type=data.budget_type,
                client_name=data.client_name,
                project_code=data.project_code,
                area_total_m2=data.area_total_m2,
                linear_meters=data.linear_meters,
                total_project_weight=data.total_project_weight,
                compositions=standard_compositions(),
                tax_config=data.tax_config or TaxConfig(),
                created_at=now,
            )
            logger.info(f"Budget created: {budget.number} ({budget.id})")
            return self._store(budget)

    def get(self, budget_id: str) -> Budget:
        with self._lock:
            return self._require(budget_id).model_copy(deep=True)

    def list(self, client_name: Optional[str] = None) -> List[Budget]:
        with self._lock:
            budgets = list(self._budgets.values())
        if client_name:
            wanted = client_name.strip().casefold()
            budgets = [b for b in budgets if (b.client_name or "").strip().casefold() == wanted]
        return [b.model_copy(deep=True) for b in budgets]

    def update(self, budget_id: str, changes: Dict[str, Any]) -> Budget:
        with self._lock:
            current = self._require(budget_id)
            merged = merge_changes(current.model_dump(), changes)
            return self._store(Budget.model_validate(merged))

    def delete(self, budget_id: str) -> None:
        with self._lock:
            self._require(budget_id)
            del self._budgets[budget_id]
            logger.info(f"Budget deleted: {budget_id}")

    def clone(self, budget_id: str) -> Budget:
        """Copy a budget under a new id and number; compositions are deep-copied."""
        with self._lock:
            original = self._require(budget_id)
            now = self._now()
            clone = original.model_copy(deep=True, update={
                "id": str(uuid.uuid4()),
                "number": self._issue_number(original.budget_type),
                "name": f"{original.name} (Cópia)",
                "created_at": now,
            })
            logger.info(f"Budget {original.number} cloned as {clone.number}")
            return self._store(clone)

    def next_number(self, budget_type: BudgetType) -> str:
        with self._lock:
            return self._format_number(budget_type, self._counters[budget_type] + 1)

    # ── Composition editing ────────────────────────────────────────────────

    def add_item(self, budget_id: str, composition_id: str, item: LineItem) -> Budget:
        with self._lock:
            budget = self._require(budget_id).model_copy(deep=True)
            self._require_composition(budget, composition_id).items.append(item.model_copy(deep=True))
            return self._store(budget)

    def remove_item(self, budget_id: str, composition_id: str, item_id: str) -> Budget:
        with self._lock:
            budget = self._require(budget_id).model_copy(deep=True)
            composition = self._require_composition(budget, composition_id)
            remaining = [i for i in composition.items if i.id != item_id]
            if len(remaining) == len(composition.items):
                raise BudgetNotFoundError("Item", item_id)
            composition.items = remaining
            return self._store(budget)

    def update_composition(
        self,
        budget_id: str,
        composition_id: str,
        changes: Dict[str, Any],
        validator: Optional[Callable[[Composition], None]] = None,
    ) -> Budget:
        with self._lock:
            budget = self._require(budget_id).model_copy(deep=True)
            composition = self._require_composition(budget, composition_id)
            updated = Composition.model_validate(merge_changes(composition.model_dump(), changes))
            if validator is not None:
                validator(updated)
            budget.compositions = [
                updated if c.id == composition_id else c for c in budget.compositions
            ]
            return self._store(budget)
