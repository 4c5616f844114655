"""
conftest.py - Shared pytest fixtures for the budget costing test suite.

Engine tests are pure unit tests over Budget snapshots; route tests use
FastAPI's TestClient against a fresh in-memory repository.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``orcamento.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import os
import sys

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any package imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def costing_engine():
    """CostingEngine with defaults (encargos sociais 50.72 %)."""
    from orcamento.services.costing_engine import CostingEngine
    return CostingEngine()


@pytest.fixture(scope="session")
def dre_engine(costing_engine):
    from orcamento.services.dre_engine import DREEngine
    return DREEngine(costing_engine)


@pytest.fixture(scope="session")
def report_engine(costing_engine):
    from orcamento.services.report_engine import ReportEngine
    return ReportEngine(costing_engine)


# ---------------------------------------------------------------------------
# Sample budgets
# ---------------------------------------------------------------------------

@pytest.fixture
def material_composition():
    """
    One material item 10 × 20 = 200, BDI 12 + 5 + 3 + 5 = 25 %.
    bdi_valor = 50, subtotal = 250.
    """
    from orcamento.models.budget_schema import BDIProfile, Composition, LineItem
    return Composition(
        name="Materiais",
        composition_type="materials",
        items=[LineItem(description="Chapa A36", item_type="material", quantity=10, unit_value=20)],
        bdi=BDIProfile(administrative=12, commercial=5, financial=3, indirect_taxes=5),
    )


@pytest.fixture
def reference_budget(material_composition):
    """
    Single-composition budget with ISS 5 % + Simples 6 %:
    subtotal 250, tributos 27.5, total venda 277.5.
    """
    from orcamento.models.budget_schema import Budget, TaxConfig
    return Budget(
        name="Galpão Industrial",
        compositions=[material_composition],
        tax_config=TaxConfig(has_iss=True, iss_rate=5, simples_rate=6),
    )


@pytest.fixture
def mixed_budget():
    """
    Two compositions with unequal direct cost and BDI:
      A: 100 @ 10 %  → bdi 10
      B: 900 @ 30 %  → bdi 270
    bdi_medio = 280 / 1000 × 100 = 28 %.
    """
    from orcamento.models.budget_schema import BDIProfile, Budget, Composition, LineItem, TaxConfig
    return Budget(
        name="Ponderação BDI",
        compositions=[
            Composition(
                name="Ferramentas",
                composition_type="tools",
                items=[LineItem(item_type="tool", quantity=1, unit_value=100)],
                bdi=BDIProfile(administrative=10),
            ),
            Composition(
                name="Materiais",
                composition_type="materials",
                items=[LineItem(item_type="material", quantity=9, unit_value=100)],
                bdi=BDIProfile(administrative=15, commercial=5, financial=5, indirect_taxes=5),
            ),
        ],
        tax_config=TaxConfig(has_iss=False, iss_rate=3, simples_rate=0),
    )


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """TestClient with lifespan run, so each test gets a fresh repository."""
    from fastapi.testclient import TestClient
    from orcamento.main import app
    with TestClient(app) as test_client:
        yield test_client
