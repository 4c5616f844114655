"""Viability alert engine - flags budgets that should not go to approval as-is."""
import logging
from typing import List, Optional

from orcamento import config
from orcamento.models.budget_schema import Budget
from orcamento.models.costing_results import DRE, AlertType, BudgetAlert, BudgetTotals
from orcamento.services.dre_engine import DREEngine

logger = logging.getLogger("orcamento-risk")


class BudgetRiskEngine:
    """Rule-based alerts over a budget's totals and DRE."""

    def __init__(self, dre_engine: Optional[DREEngine] = None) -> None:
        self.dre_engine = dre_engine or DREEngine()

    def check_budget(self, budget: Budget) -> List[BudgetAlert]:
        totals = self.dre_engine.costing.calculate_budget(budget)
        dre = self.dre_engine.derive(totals, budget)
        return self.evaluate(budget, totals, dre)

    def evaluate(self, budget: Budget, totals: BudgetTotals, dre: DRE) -> List[BudgetAlert]:
        """Run all checks on precomputed totals and DRE."""
        alerts: List[BudgetAlert] = []
        alerts.extend(self._check_profit(dre))
        alerts.extend(self._check_bdi_medio(totals))
        alerts.extend(self._check_composition_bdi(budget))

        logger.info(f"Risk analysis for budget {budget.id}: {len(alerts)} alerts")
        return alerts

    # ─── Profitability ────────────────────────────────────────────────────

    def _check_profit(self, dre: DRE) -> List[BudgetAlert]:
        alerts = []
        if dre.lucro_liquido < 0:
            alerts.append(BudgetAlert(
                tipo=AlertType.ERROR,
                mensagem=f"PREJUÍZO: Lucro líquido negativo ({dre.lucro_liquido:.2f})",
            ))
        if 0 < dre.margem_liquida < config.THIN_MARGIN_LIMIT:
            alerts.append(BudgetAlert(
                tipo=AlertType.WARNING,
                mensagem=f"Margem líquida muito baixa ({dre.margem_liquida:.1f}%)",
            ))
        return alerts

    # ─── BDI ──────────────────────────────────────────────────────────────

    def _check_bdi_medio(self, totals: BudgetTotals) -> List[BudgetAlert]:
        if totals.bdi_medio < config.MIN_RECOMMENDED_BDI_MEDIO:
            return [BudgetAlert(
                tipo=AlertType.WARNING,
                mensagem=f"BDI médio abaixo do mínimo recomendado ({totals.bdi_medio:.1f}%)",
            )]
        return []

    def _check_composition_bdi(self, budget: Budget) -> List[BudgetAlert]:
        alerts = []
        for comp in budget.compositions:
            standard = config.STANDARD_BDI_BY_TYPE.get(comp.composition_type.value)
            if standard is None:
                continue
            bdi_pct = comp.bdi.total
            if abs(bdi_pct - standard) > config.BDI_DEVIATION_TOLERANCE:
                alerts.append(BudgetAlert(
                    tipo=AlertType.WARNING,
                    mensagem=(
                        f'BDI de "{comp.name}" ({bdi_pct:g}%) diverge do padrão ({standard:g}%)'
                    ),
                ))
        return alerts
