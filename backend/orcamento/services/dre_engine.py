"""
DRE engine - restates budget totals as an income statement and classifies
the budget's viability for the approval workflow.

    receita_liquida = subtotal − tributos
    lucro_bruto     = receita_liquida − custo direto
    lucro_liquido   = lucro_bruto − BDI
    margem_bruta    = lucro_bruto / receita_liquida × 100
    margem_liquida  = lucro_liquido / subtotal × 100   (margin over total)

Net profit is a residual; per-composition profit margins are not applied.
"""
import logging
from typing import Dict, List, Optional

from orcamento import config
from orcamento.models.budget_schema import Budget
from orcamento.models.costing_results import (
    DRE,
    BudgetTotals,
    CompositionBreakdown,
    Viability,
)
from orcamento.services.costing_engine import CostingEngine
from orcamento.services.logging_config import budget_logger

logger = logging.getLogger("orcamento-dre")


def classify_viability(lucro_liquido: float, margem_liquida: float) -> Viability:
    """
    Four-tier viability of a budget's net margin.

    Loss wins over any margin; the margin bands are closed at their lower
    bound (5.0 is Aceitável, 15.0 is Bom).
    """
    if lucro_liquido < 0:
        return Viability.LOSS
    if margem_liquida < config.THIN_MARGIN_LIMIT:
        return Viability.THIN_MARGIN
    if margem_liquida < config.ACCEPTABLE_MARGIN_LIMIT:
        return Viability.ACCEPTABLE
    return Viability.GOOD


def build_breakdown(totals: BudgetTotals) -> List[CompositionBreakdown]:
    """Per-composition rows for the DRE disclosure table."""
    rows = []
    for comp in totals.compositions:
        rows.append(CompositionBreakdown(
            composition_id=comp.composition_id,
            name=comp.name,
            composition_type=comp.composition_type,
            custo_directo=comp.custo_directo,
            bdi_valor=comp.bdi_valor,
            subtotal=comp.subtotal,
            percentual_custo=(
                comp.custo_directo / totals.custo_directo_total * 100.0
                if totals.custo_directo_total != 0 else 0.0
            ),
            percentual_bdi=(
                comp.bdi_valor / totals.bdi_total * 100.0
                if totals.bdi_total != 0 else 0.0
            ),
        ))
    return rows


class DREEngine:
    """Derives the DRE from a budget snapshot (or from precomputed totals)."""

    def __init__(self, costing_engine: Optional[CostingEngine] = None) -> None:
        self.costing = costing_engine or CostingEngine()

    def derive(self, totals: BudgetTotals, budget: Budget) -> DRE:
        subtotal = totals.subtotal
        tributos = totals.tributos_total

        receita_liquida = subtotal - tributos
        lucro_bruto = receita_liquida - totals.custo_directo_total
        margem_bruta = lucro_bruto / receita_liquida * 100.0 if receita_liquida > 0 else 0.0
        lucro_liquido = lucro_bruto - totals.bdi_total
        margem_liquida = lucro_liquido / subtotal * 100.0 if subtotal > 0 else 0.0

        taxes = budget.tax_config
        valor_iss = subtotal * taxes.iss_rate / 100.0 if taxes.has_iss else 0.0
        valor_simples = subtotal * taxes.simples_rate / 100.0

        viabilidade = classify_viability(lucro_liquido, margem_liquida)
        if viabilidade == Viability.LOSS:
            budget_logger(logger, budget.id).info(
                "Budget flagged as loss: lucro liquido %.2f", lucro_liquido
            )

        return DRE(
            receita_bruta=totals.total_venda,
            valor_iss=valor_iss,
            valor_simples=valor_simples,
            tributos_total=tributos,
            receita_liquida=receita_liquida,
            custo_directo_total=totals.custo_directo_total,
            lucro_bruto=lucro_bruto,
            margem_bruta=margem_bruta,
            bdi_total=totals.bdi_total,
            lucro_liquido=lucro_liquido,
            margem_liquida=margem_liquida,
            viabilidade=viabilidade,
            analise_vertical=self._vertical_analysis(
                totals.total_venda,
                {
                    "receitaBruta": totals.total_venda,
                    "tributosTotal": tributos,
                    "valorISS": valor_iss,
                    "valorSimples": valor_simples,
                    "receitaLiquida": receita_liquida,
                    "custoDirectoTotal": totals.custo_directo_total,
                    "lucroBruto": lucro_bruto,
                    "bdiTotal": totals.bdi_total,
                    "lucroLiquido": lucro_liquido,
                },
            ),
            breakdown=build_breakdown(totals),
        )

    def calculate(self, budget: Budget) -> DRE:
        """Full chain: validate, cost, and restate the budget as a DRE."""
        return self.derive(self.costing.calculate_budget(budget), budget)

    @staticmethod
    def _vertical_analysis(total_venda: float, lines: Dict[str, float]) -> Dict[str, float]:
        """AV% - each DRE line as a share of total venda."""
        if total_venda == 0:
            return {key: 0.0 for key in lines}
        return {key: value / total_venda * 100.0 for key, value in lines.items()}
