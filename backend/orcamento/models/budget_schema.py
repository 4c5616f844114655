"""
Budget (Orçamento) input schema.

A Budget owns its compositions; a Composition owns its line items. These are
snapshots handed to the costing engines - derived totals are never stored
here. Python attributes are snake_case, JSON uses camelCase aliases and both
are accepted on input.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel

from orcamento import config

_MODEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
}


def _new_id() -> str:
    return str(uuid.uuid4())


class ItemType(str, Enum):
    MATERIAL = "material"
    LABOR = "labor"
    TOOL = "tool"
    CONSUMABLE = "consumable"
    MOBILIZATION = "mobilization"
    THIRD_PARTY = "third_party"
    OTHER = "other"


class CalculationBasis(str, Enum):
    WEIGHT = "weight"
    LABOR_HOURS = "laborHours"
    MACHINE_HOURS = "machineHours"
    UNIT = "unit"
    LINEAR_METER = "linearMeter"
    SQUARE_METER = "squareMeter"


class CompositionType(str, Enum):
    MOBILIZATION = "mobilization"
    DEMOBILIZATION = "demobilization"
    FABRICATION_LABOR = "fabrication_labor"
    ASSEMBLY_LABOR = "assembly_labor"
    BLASTING_PAINTING = "blasting_painting"
    TOOLS = "tools"
    CONSUMABLES = "consumables"
    MATERIALS = "materials"


class BudgetType(str, Enum):
    SERVICE = "service"
    PRODUCT = "product"


class LineItem(BaseModel):
    """One cost component inside a composition."""
    id: str = Field(default_factory=_new_id)
    code: Optional[str] = None
    description: str = ""
    unit: str = ""
    item_type: ItemType = ItemType.MATERIAL
    quantity: float = Field(..., ge=0.0)
    unit_value: float = Field(..., ge=0.0, description="Currency per unit")
    multiplier_factor: Optional[float] = Field(
        None, ge=0.0, description="Peso - hours or weight multiplier"
    )
    calculation_basis: Optional[CalculationBasis] = None
    weight: Optional[float] = Field(None, ge=0.0)
    role: Optional[str] = Field(None, description="Cargo, for labor items")

    model_config = _MODEL_CONFIG


class BDIProfile(BaseModel):
    """Four named indirect-cost percentages; the total is their simple sum."""
    administrative: float = Field(0.0, ge=0.0)
    commercial: float = Field(0.0, ge=0.0)
    financial: float = Field(0.0, ge=0.0)
    indirect_taxes: float = Field(0.0, ge=0.0)

    model_config = _MODEL_CONFIG

    @computed_field
    def total(self) -> float:
        return self.administrative + self.commercial + self.financial + self.indirect_taxes


class Composition(BaseModel):
    """A named group of line items sharing one BDI profile."""
    id: str = Field(default_factory=_new_id)
    name: str
    composition_type: CompositionType
    items: List[LineItem] = Field(default_factory=list)
    bdi: BDIProfile = Field(default_factory=BDIProfile)
    # Recorded only; the DRE derives net profit as a residual.
    profit_margin: float = Field(0.0, ge=0.0)
    order: int = 0

    model_config = _MODEL_CONFIG


class TaxConfig(BaseModel):
    has_iss: bool = Field(config.DEFAULT_HAS_ISS, alias="hasISS")
    iss_rate: float = Field(config.DEFAULT_ISS_RATE, ge=0.0)
    simples_rate: float = Field(config.DEFAULT_SIMPLES_RATE, ge=0.0)

    model_config = _MODEL_CONFIG


class Budget(BaseModel):
    """Aggregation root. Owns its compositions exclusively."""
    id: str = Field(default_factory=_new_id)
    number: Optional[str] = None
    name: str = ""
    budget_type: BudgetType = BudgetType.SERVICE
    client_name: Optional[str] = None
    project_code: Optional[str] = None
    area_total_m2: Optional[float] = Field(None, ge=0.0)
    linear_meters: Optional[float] = Field(None, ge=0.0)
    total_project_weight: Optional[float] = Field(None, ge=0.0)
    compositions: List[Composition] = Field(default_factory=list)
    tax_config: TaxConfig = Field(default_factory=TaxConfig)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = _MODEL_CONFIG

    def find_composition(self, composition_id: str) -> Optional[Composition]:
        for comp in self.compositions:
            if comp.id == composition_id:
                return comp
        return None


# ── Request payloads ─────────────────────────────────────────────────────────

class BudgetCreate(BaseModel):
    name: str = Field(..., min_length=1)
    budget_type: BudgetType = BudgetType.SERVICE
    client_name: Optional[str] = None
    project_code: Optional[str] = None
    area_total_m2: Optional[float] = Field(None, ge=0.0)
    linear_meters: Optional[float] = Field(None, ge=0.0)
    total_project_weight: Optional[float] = Field(None, ge=0.0)
    tax_config: Optional[TaxConfig] = None

    model_config = _MODEL_CONFIG


class BudgetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    client_name: Optional[str] = None
    project_code: Optional[str] = None
    area_total_m2: Optional[float] = Field(None, ge=0.0)
    linear_meters: Optional[float] = Field(None, ge=0.0)
    total_project_weight: Optional[float] = Field(None, ge=0.0)
    tax_config: Optional[TaxConfig] = None

    model_config = _MODEL_CONFIG


class CompositionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    bdi: Optional[BDIProfile] = None
    profit_margin: Optional[float] = Field(None, ge=0.0)

    model_config = _MODEL_CONFIG
