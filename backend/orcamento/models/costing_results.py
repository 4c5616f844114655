"""
Derived costing records - outputs of the costing and DRE engines.

All values are unrounded; rounding happens only in report_engine.build_report.
Percentages are on a 0–100 scale.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from orcamento.models.budget_schema import CompositionType

_MODEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class Viability(str, Enum):
    LOSS = "Prejuízo"
    THIN_MARGIN = "Margem Baixa"
    ACCEPTABLE = "Aceitável"
    GOOD = "Bom"


class SocialCharges(BaseModel):
    percentual: float = 0.0
    valor: float = 0.0

    model_config = _MODEL_CONFIG


class LineItemCost(BaseModel):
    item_id: str
    subtotal: float                 # base: quantity × [multiplier] × unit value
    uses_multiplier: bool
    charged_cost: float             # subtotal + social charges (labor only)
    social_charges: SocialCharges = Field(default_factory=SocialCharges)
    percentual: float = 0.0         # subtotal / composition custo direto × 100

    model_config = _MODEL_CONFIG


class CompositionTotals(BaseModel):
    composition_id: str
    name: str
    composition_type: CompositionType
    custo_directo: float
    bdi_percent_total: float
    bdi_valor: float
    subtotal: float
    profit_margin: float = 0.0
    items: List[LineItemCost] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class BudgetTotals(BaseModel):
    custo_directo_total: float
    bdi_total: float
    bdi_medio: float
    subtotal: float
    tributos_total: float
    total_venda: float
    custo_por_m2: Optional[float] = None
    compositions: List[CompositionTotals] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class CompositionBreakdown(BaseModel):
    """One row of the DRE disclosure table."""
    composition_id: str
    name: str
    composition_type: CompositionType
    custo_directo: float
    bdi_valor: float
    subtotal: float
    percentual_custo: float
    percentual_bdi: float

    model_config = _MODEL_CONFIG


class DRE(BaseModel):
    """Demonstrativo de Resultado - income-statement view of a budget."""
    receita_bruta: float
    valor_iss: float
    valor_simples: float
    tributos_total: float
    receita_liquida: float
    custo_directo_total: float
    lucro_bruto: float
    margem_bruta: float
    bdi_total: float
    lucro_liquido: float
    margem_liquida: float
    viabilidade: Viability
    # AV% - each line as a share of total sale price
    analise_vertical: Dict[str, float] = Field(default_factory=dict)
    breakdown: List[CompositionBreakdown] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class AlertType(str, Enum):
    ERROR = "erro"
    WARNING = "alerta"
    INFO = "info"


class BudgetAlert(BaseModel):
    tipo: AlertType
    mensagem: str

    model_config = _MODEL_CONFIG


class AbcItem(BaseModel):
    item_id: str
    description: str = ""
    subtotal: float
    percentual_acumulado: float
    classe_abc: str

    model_config = _MODEL_CONFIG


class AbcGroup(BaseModel):
    total: float = 0.0
    percentual: float = 0.0

    model_config = _MODEL_CONFIG


class AbcAnalysis(BaseModel):
    composition_id: str
    itens_classificados: List[AbcItem] = Field(default_factory=list)
    grupo_a: AbcGroup = Field(default_factory=AbcGroup)
    grupo_b: AbcGroup = Field(default_factory=AbcGroup)
    grupo_c: AbcGroup = Field(default_factory=AbcGroup)

    model_config = _MODEL_CONFIG
