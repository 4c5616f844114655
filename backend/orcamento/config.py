"""
Costing configuration - single source of truth for rates, thresholds and
standard compositions used by the budget engines.

Import from here in all services and routes rather than hardcoding values.
"""
from __future__ import annotations

import os

# ── Environment ───────────────────────────────────────────────────────────────

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"
CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000").split(",")
    if o.strip()
]


# ── Labor ─────────────────────────────────────────────────────────────────────

# Encargos sociais on labor items (percent of base labor cost)
SOCIAL_CHARGES_PCT: float = 50.72


# ── Taxes (applied on the pre-tax sale price) ─────────────────────────────────

DEFAULT_HAS_ISS: bool = False
DEFAULT_ISS_RATE: float = 3.0
DEFAULT_SIMPLES_RATE: float = 11.8


# ── Standard compositions ─────────────────────────────────────────────────────
# Seeded, in this order, on every new budget. The four-part BDI split sums to
# the standard total for the type.
STANDARD_COMPOSITIONS: list[dict] = [
    {"type": "mobilization",      "name": "Mobilização",    "bdi": (5.0, 2.0, 1.0, 2.0)},
    {"type": "demobilization",    "name": "Desmobilização", "bdi": (5.0, 2.0, 1.0, 2.0)},
    {"type": "fabrication_labor", "name": "MO Fabricação",  "bdi": (7.0, 3.0, 2.0, 3.0)},
    {"type": "assembly_labor",    "name": "MO Montagem",    "bdi": (7.0, 3.0, 2.0, 3.0)},
    {"type": "blasting_painting", "name": "Jato/Pintura",   "bdi": (6.0, 2.0, 2.0, 2.0)},
    {"type": "tools",             "name": "Ferramentas",    "bdi": (4.0, 1.0, 1.0, 2.0)},
    {"type": "consumables",       "name": "Consumíveis",    "bdi": (4.0, 1.0, 1.0, 2.0)},
    {"type": "materials",         "name": "Materiais",      "bdi": (12.0, 5.0, 3.0, 5.0)},
]

STANDARD_BDI_BY_TYPE: dict[str, float] = {
    c["type"]: sum(c["bdi"]) for c in STANDARD_COMPOSITIONS
}


# ── Viability (net margin, percent) ───────────────────────────────────────────

THIN_MARGIN_LIMIT: float = 5.0       # [0, 5)  → Margem Baixa
ACCEPTABLE_MARGIN_LIMIT: float = 15.0  # [5, 15) → Aceitável, ≥ 15 → Bom


# ── Alerts ────────────────────────────────────────────────────────────────────

MIN_RECOMMENDED_BDI_MEDIO: float = 15.0
BDI_DEVIATION_TOLERANCE: float = 3.0


# ── ABC analysis (cumulative share, percent) ─────────────────────────────────

ABC_CLASS_A_LIMIT: float = 80.0
ABC_CLASS_B_LIMIT: float = 95.0


# ── Presentation ──────────────────────────────────────────────────────────────

REPORT_DECIMALS: int = 2
