"""ABC (Pareto) classification of a composition's line items by subtotal."""
import logging
from typing import Optional

from orcamento import config
from orcamento.models.budget_schema import Composition
from orcamento.models.costing_results import AbcAnalysis, AbcGroup, AbcItem
from orcamento.services.costing_engine import CostingEngine

logger = logging.getLogger("orcamento-abc")


def classify_abc(percentual_acumulado: float) -> str:
    if percentual_acumulado <= config.ABC_CLASS_A_LIMIT:
        return "A"
    if percentual_acumulado <= config.ABC_CLASS_B_LIMIT:
        return "B"
    return "C"


class ABCEngine:

    def __init__(self, costing_engine: Optional[CostingEngine] = None) -> None:
        self.costing = costing_engine or CostingEngine()

    def analyze(self, composition: Composition) -> AbcAnalysis:
        """
        Sort items by subtotal (descending), accumulate their share of the
        composition total and band them: ≤ 80 % → A, ≤ 95 % → B, else C.

        An empty or zero-cost composition yields an empty, all-zero analysis.
        """
        costs = self.costing.calculate_composition(composition).items
        logger.debug("ABC analysis for composition %s: %d items", composition.id, len(costs))
        descriptions = {i.id: i.description for i in composition.items}

        ranked = sorted(costs, key=lambda c: c.subtotal, reverse=True)
        total = sum(c.subtotal for c in ranked)
        if total == 0:
            return AbcAnalysis(composition_id=composition.id)

        groups = {"A": 0.0, "B": 0.0, "C": 0.0}
        classified = []
        acumulado = 0.0
        for cost in ranked:
            acumulado += cost.subtotal
            pct_acumulado = acumulado / total * 100.0
            classe = classify_abc(pct_acumulado)
            groups[classe] += cost.subtotal
            classified.append(AbcItem(
                item_id=cost.item_id,
                description=descriptions.get(cost.item_id, ""),
                subtotal=cost.subtotal,
                percentual_acumulado=pct_acumulado,
                classe_abc=classe,
            ))

        return AbcAnalysis(
            composition_id=composition.id,
            itens_classificados=classified,
            grupo_a=AbcGroup(total=groups["A"], percentual=groups["A"] / total * 100.0),
            grupo_b=AbcGroup(total=groups["B"], percentual=groups["B"] / total * 100.0),
            grupo_c=AbcGroup(total=groups["C"], percentual=groups["C"] / total * 100.0),
        )
