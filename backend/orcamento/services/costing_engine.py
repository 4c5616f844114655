"""
CostingEngine - budget costing for commercial construction (Orçamento/QQP).

Covers:
  - Line item subtotals (plain, and hour/weight multiplier "peso" items)
  - Encargos sociais surcharge on labor items
  - Composition rollup: custo direto, four-part BDI, composition subtotal
  - Budget rollup: cost-weighted BDI médio, ISS + Simples taxes, total venda

Every stage is a pure function of a Budget snapshot. Nothing is rounded here;
see report_engine for the presentation boundary.
"""
import logging
import warnings
from typing import Any, Dict, List, Optional

from orcamento import config
from orcamento.models.budget_schema import (
    Budget,
    CalculationBasis,
    Composition,
    ItemType,
    LineItem,
)
from orcamento.models.costing_results import (
    BudgetTotals,
    CompositionTotals,
    LineItemCost,
    SocialCharges,
)
from orcamento.services.exceptions import CostingValidationError, DegenerateInputWarning
from orcamento.services.logging_config import budget_logger

logger = logging.getLogger("orcamento-costing")

# Calculation bases priced per hour × peso
_MULTIPLIER_BASES = frozenset({CalculationBasis.LABOR_HOURS, CalculationBasis.MACHINE_HOURS})


def uses_multiplier(item: LineItem) -> bool:
    """True for labor/machine-hour bases and for every mobilization item."""
    return item.calculation_basis in _MULTIPLIER_BASES or item.item_type == ItemType.MOBILIZATION


def _share(part: float, whole: float) -> float:
    """part / whole × 100, or 0 when whole is zero."""
    if whole == 0:
        return 0.0
    return part / whole * 100.0


class CostingEngine:
    """
    Cost aggregation from line items up to the budget sale price.

    All monetary values are in the budget's single currency (BRL).
    """

    def __init__(self, cost_config: Optional[Dict[str, Any]] = None) -> None:
        cfg = cost_config or {}
        self.social_charges_pct: float = float(
            cfg.get("social_charges_pct", config.SOCIAL_CHARGES_PCT)
        )
        if self.social_charges_pct < 0:
            raise ValueError(f"social_charges_pct must be non-negative; received {self.social_charges_pct}")

    # ------------------------------------------------------------------
    # 1. Validation
    # ------------------------------------------------------------------

    def validate_item(self, item: LineItem) -> None:
        """
        Reject malformed line items with a field-level error.

        Quantity and unit value must be strictly positive; multiplier items
        (hour bases, mobilization) need a positive multiplier factor.
        """
        if item.quantity <= 0:
            raise CostingValidationError(
                "quantity", "Quantidade deve ser maior que zero", item_id=item.id
            )
        if item.unit_value <= 0:
            raise CostingValidationError(
                "unitValue", "Valor unitário deve ser maior que zero", item_id=item.id
            )
        if uses_multiplier(item) and not item.multiplier_factor:
            raise CostingValidationError(
                "multiplierFactor",
                "Fator multiplicador (peso) é obrigatório para horas e mobilização",
                item_id=item.id,
            )
        if item.multiplier_factor is not None and item.multiplier_factor < 0:
            raise CostingValidationError(
                "multiplierFactor", "Fator multiplicador não pode ser negativo", item_id=item.id
            )

    def validate_composition(self, composition: Composition) -> None:
        if not composition.name or not composition.name.strip():
            raise CostingValidationError("name", "Nome da composição é obrigatório")
        for item in composition.items:
            self.validate_item(item)

    def validate_budget(self, budget: Budget) -> None:
        """Validate every composition before any aggregation runs."""
        for composition in budget.compositions:
            self.validate_composition(composition)

    # ------------------------------------------------------------------
    # 2. Line item costing
    # ------------------------------------------------------------------

    def calculate_item(self, item: LineItem) -> LineItemCost:
        """
        Cost a single line item.

        Formula:
            multiplier items:  subtotal = quantity × multiplier_factor × unit_value
            otherwise:         subtotal = quantity × unit_value
            labor items:       charged  = subtotal × (1 + social_charges_pct / 100)

        The share of the composition (percentual) is filled in by
        calculate_composition once custo direto is known.
        """
        self.validate_item(item)

        multiplier = uses_multiplier(item)
        if multiplier and item.multiplier_factor:
            subtotal = item.quantity * item.multiplier_factor * item.unit_value
        else:
            subtotal = item.quantity * item.unit_value

        charges = SocialCharges()
        if item.item_type == ItemType.LABOR:
            charges = SocialCharges(
                percentual=self.social_charges_pct,
                valor=subtotal * self.social_charges_pct / 100.0,
            )

        return LineItemCost(
            item_id=item.id,
            subtotal=subtotal,
            uses_multiplier=multiplier,
            charged_cost=subtotal + charges.valor,
            social_charges=charges,
        )

    def calculate_social_charges(self, base_value: float, percentual: Optional[float] = None) -> float:
        """Encargos sociais on a base labor value (default 50.72 %)."""
        pct = self.social_charges_pct if percentual is None else float(percentual)
        return base_value * pct / 100.0

    # ------------------------------------------------------------------
    # 3. Composition rollup
    # ------------------------------------------------------------------

    def calculate_composition(self, composition: Composition) -> CompositionTotals:
        """
        Roll a composition's items into custo direto + BDI.

            custo_directo     = Σ charged cost of items
            bdi_percent_total = administrative + commercial + financial + indirect_taxes
            bdi_valor         = custo_directo × bdi_percent_total / 100
            subtotal          = custo_directo + bdi_valor
        """
        self.validate_composition(composition)

        if not composition.items:
            warnings.warn(
                f"Composition '{composition.name}' has no items; totals are zero",
                DegenerateInputWarning,
                stacklevel=2,
            )

        item_costs: List[LineItemCost] = [self.calculate_item(i) for i in composition.items]
        custo_directo = sum(c.charged_cost for c in item_costs)
        for cost in item_costs:
            cost.percentual = _share(cost.subtotal, custo_directo)

        bdi_pct = composition.bdi.total
        bdi_valor = custo_directo * bdi_pct / 100.0

        return CompositionTotals(
            composition_id=composition.id,
            name=composition.name,
            composition_type=composition.composition_type,
            custo_directo=custo_directo,
            bdi_percent_total=bdi_pct,
            bdi_valor=bdi_valor,
            subtotal=custo_directo + bdi_valor,
            profit_margin=composition.profit_margin,
            items=item_costs,
        )

    # ------------------------------------------------------------------
    # 4. Budget rollup
    # ------------------------------------------------------------------

    def calculate_budget(self, budget: Budget) -> BudgetTotals:
        """
        Aggregate all compositions into the budget sale price.

            bdi_medio      = bdi_total / custo_directo_total × 100  (cost-weighted)
            subtotal       = custo_directo_total + bdi_total         (pre-tax)
            tributos_total = subtotal × (ISS if hasISS + Simples) / 100
            total_venda    = subtotal + tributos_total
        """
        self.validate_budget(budget)

        compositions = [self.calculate_composition(c) for c in budget.compositions]

        custo_directo_total = sum(c.custo_directo for c in compositions)
        bdi_total = sum(c.bdi_valor for c in compositions)
        bdi_medio = _share(bdi_total, custo_directo_total) if custo_directo_total > 0 else 0.0
        subtotal = custo_directo_total + bdi_total

        taxes = budget.tax_config
        iss_rate = taxes.iss_rate if taxes.has_iss else 0.0
        tributos_total = subtotal * (iss_rate + taxes.simples_rate) / 100.0
        total_venda = subtotal + tributos_total

        custo_por_m2 = None
        if budget.area_total_m2 and budget.area_total_m2 > 0:
            custo_por_m2 = total_venda / budget.area_total_m2

        if custo_directo_total == 0:
            warnings.warn(
                f"Budget '{budget.id}' has zero direct cost; all totals are zero",
                DegenerateInputWarning,
                stacklevel=2,
            )

        budget_logger(logger, budget.id).debug(
            "Budget costed: %d compositions, custo direto %.4f, total venda %.4f",
            len(compositions), custo_directo_total, total_venda,
        )

        return BudgetTotals(
            custo_directo_total=custo_directo_total,
            bdi_total=bdi_total,
            bdi_medio=bdi_medio,
            subtotal=subtotal,
            tributos_total=tributos_total,
            total_venda=total_venda,
            custo_por_m2=custo_por_m2,
            compositions=compositions,
        )
