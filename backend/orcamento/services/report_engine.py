"""
Report Engine - the presentation boundary of the costing pipeline.

Builds the JSON-ready budget report consumed by the UI, the PDF/Excel export
service and the approval workflow. This is the only place values are
rounded (2 decimals); the engines upstream keep full precision.
"""
import logging
from typing import Any, Dict, Optional

from orcamento import config
from orcamento.models.budget_schema import Budget
from orcamento.services.abc_engine import ABCEngine
from orcamento.services.costing_engine import CostingEngine
from orcamento.services.dre_engine import DREEngine
from orcamento.services.logging_config import budget_logger
from orcamento.services.risk_engine import BudgetRiskEngine

logger = logging.getLogger("orcamento-report")


def round_output(value: Any, decimals: int = config.REPORT_DECIMALS) -> Any:
    """Recursively round every float in a dumped record."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return round(value, decimals)
    if isinstance(value, dict):
        return {k: round_output(v, decimals) for k, v in value.items()}
    if isinstance(value, list):
        return [round_output(v, decimals) for v in value]
    return value


class ReportEngine:

    def __init__(self, costing_engine: Optional[CostingEngine] = None) -> None:
        self.costing = costing_engine or CostingEngine()
        self.dre_engine = DREEngine(self.costing)
        self.risk_engine = BudgetRiskEngine(self.dre_engine)
        self.abc_engine = ABCEngine(self.costing)

    def build_report(self, budget: Budget) -> Dict[str, Any]:
        """
        Full budget report: totals, DRE (with breakdown and AV%), alerts.

        Raises CostingValidationError before anything is computed if any
        line item is malformed.
        """
        totals = self.costing.calculate_budget(budget)
        dre = self.dre_engine.derive(totals, budget)
        alerts = self.risk_engine.evaluate(budget, totals, dre)

        report = {
            "budgetId": budget.id,
            "number": budget.number,
            "name": budget.name,
            "totals": totals.model_dump(by_alias=True, mode="json"),
            "dre": dre.model_dump(by_alias=True, mode="json"),
            "alerts": [a.model_dump(by_alias=True, mode="json") for a in alerts],
        }
        budget_logger(logger, budget.id).info(
            "Report built: total venda %.2f, %s",
            totals.total_venda, dre.viabilidade.value,
        )
        return round_output(report)

    def build_dre(self, budget: Budget) -> Dict[str, Any]:
        return round_output(self.dre_engine.calculate(budget).model_dump(by_alias=True, mode="json"))

    def build_abc(self, budget: Budget) -> Dict[str, Any]:
        """ABC analysis for every composition of the budget."""
        self.costing.validate_budget(budget)
        return {
            "budgetId": budget.id,
            "compositions": [
                round_output(self.abc_engine.analyze(c).model_dump(by_alias=True, mode="json"))
                for c in budget.compositions
            ],
        }

    def build_alerts(self, budget: Budget) -> list:
        return [a.model_dump(by_alias=True, mode="json") for a in self.risk_engine.check_budget(budget)]
