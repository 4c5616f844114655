"""
API tests for /api/budgets via FastAPI TestClient.

Payloads use the camelCase wire format; every test starts from an empty
in-memory repository.
"""

import logging
from datetime import datetime, timezone

import pytest

from orcamento.services.middleware import budget_context
from orcamento.services.report_engine import round_output

YEAR = datetime.now(timezone.utc).year

REFERENCE_PAYLOAD = {
    "name": "Galpão Industrial",
    "compositions": [{
        "name": "Materiais",
        "compositionType": "materials",
        "items": [{"itemType": "material", "description": "Chapa A36", "quantity": 10, "unitValue": 20}],
        "bdi": {"administrative": 12, "commercial": 5, "financial": 3, "indirectTaxes": 5},
    }],
    "taxConfig": {"hasISS": True, "issRate": 5, "simplesRate": 6},
}


def _create(client, **overrides):
    payload = {"name": "Galpão", **overrides}
    response = client.post("/api/budgets", json=payload)
    assert response.status_code == 201
    return response.json()


def _composition_id(budget, composition_type):
    return next(c["id"] for c in budget["compositions"] if c["compositionType"] == composition_type)


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "active"

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers


class TestStatelessCalculation:

    def test_reference_report(self, client):
        response = client.post("/api/budgets/calculate", json=REFERENCE_PAYLOAD)
        assert response.status_code == 200
        report = response.json()
        totals = report["totals"]
        assert totals["custoDirectoTotal"] == 200.0
        assert totals["bdiTotal"] == 50.0
        assert totals["subtotal"] == 250.0
        assert totals["tributosTotal"] == 27.5
        assert totals["totalVenda"] == 277.5
        dre = report["dre"]
        assert dre["receitaLiquida"] == 222.5
        assert dre["lucroBruto"] == 22.5
        assert dre["margemBruta"] == 10.11
        assert dre["lucroLiquido"] == -27.5
        assert dre["viabilidade"] == "Prejuízo"
        assert report["alerts"][0]["tipo"] == "erro"

    def test_invalid_item_returns_422(self, client):
        payload = {
            "name": "Inválido",
            "compositions": [{
                "name": "MO Montagem",
                "compositionType": "assembly_labor",
                "items": [{"id": "mo-1", "itemType": "labor", "quantity": 2, "unitValue": 40,
                           "calculationBasis": "laborHours"}],
            }],
        }
        response = client.post("/api/budgets/calculate", json=payload)
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "multiplierFactor"
        assert response.json()["detail"]["item_id"] == "mo-1"

    def test_negative_quantity_rejected_by_schema(self, client):
        payload = {
            "name": "Negativo",
            "compositions": [{
                "name": "Materiais", "compositionType": "materials",
                "items": [{"quantity": -1, "unitValue": 10}],
            }],
        }
        assert client.post("/api/budgets/calculate", json=payload).status_code == 422


class TestBudgetCrud:

    def test_create_seeds_standard_compositions(self, client):
        budget = _create(client, clientName="Metalúrgica Sul")
        assert budget["number"] == f"S-001|{YEAR}"
        assert budget["clientName"] == "Metalúrgica Sul"
        assert len(budget["compositions"]) == 8
        assert budget["compositions"][0]["name"] == "Mobilização"

    def test_create_requires_name(self, client):
        assert client.post("/api/budgets", json={"name": ""}).status_code == 422

    def test_next_number(self, client):
        _create(client, budgetType="product")
        assert client.get("/api/budgets/next-number", params={"budget_type": "product"}).json() == {
            "number": f"P-002|{YEAR}"
        }
        assert client.get("/api/budgets/next-number").json() == {"number": f"S-001|{YEAR}"}

    def test_get_list_update_delete(self, client):
        budget = _create(client)
        assert client.get(f"/api/budgets/{budget['id']}").json()["name"] == "Galpão"
        assert len(client.get("/api/budgets").json()) == 1

        updated = client.put(f"/api/budgets/{budget['id']}", json={"name": "Galpão B", "areaTotalM2": 120})
        assert updated.status_code == 200
        assert updated.json()["name"] == "Galpão B"
        assert updated.json()["areaTotalM2"] == 120

        assert client.delete(f"/api/budgets/{budget['id']}").status_code == 204
        assert client.get(f"/api/budgets/{budget['id']}").status_code == 404

    def test_unknown_budget_404(self, client):
        response = client.get("/api/budgets/missing/calculate")
        assert response.status_code == 404
        assert response.json()["detail"] == "Budget 'missing' not found"

    def test_clone(self, client):
        budget = _create(client)
        response = client.post(f"/api/budgets/{budget['id']}/clone")
        assert response.status_code == 201
        clone = response.json()
        assert clone["name"] == "Galpão (Cópia)"
        assert clone["number"] == f"S-002|{YEAR}"
        assert clone["id"] != budget["id"]


class TestCompositionEditing:

    def test_add_item_then_calculate(self, client):
        budget = _create(client, taxConfig={"hasISS": False, "simplesRate": 0})
        comp_id = _composition_id(budget, "fabrication_labor")
        response = client.post(
            f"/api/budgets/{budget['id']}/compositions/{comp_id}/items",
            json={"itemType": "labor", "role": "Soldador", "quantity": 10, "unitValue": 50},
        )
        assert response.status_code == 201

        report = client.get(f"/api/budgets/{budget['id']}/calculate").json()
        row = next(c for c in report["totals"]["compositions"] if c["compositionId"] == comp_id)
        assert row["custoDirecto"] == 753.6
        assert row["items"][0]["socialCharges"]["valor"] == 253.6

    def test_add_invalid_item_is_rejected_and_not_stored(self, client):
        budget = _create(client)
        comp_id = _composition_id(budget, "materials")
        response = client.post(
            f"/api/budgets/{budget['id']}/compositions/{comp_id}/items",
            json={"quantity": 0, "unitValue": 10},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "quantity"
        stored = client.get(f"/api/budgets/{budget['id']}").json()
        assert all(c["items"] == [] for c in stored["compositions"])

    def test_remove_item(self, client):
        budget = _create(client)
        comp_id = _composition_id(budget, "materials")
        added = client.post(
            f"/api/budgets/{budget['id']}/compositions/{comp_id}/items",
            json={"id": "chapa", "quantity": 1, "unitValue": 10},
        ).json()
        assert len(added["compositions"][7]["items"]) == 1
        path = f"/api/budgets/{budget['id']}/compositions/{comp_id}/items/chapa"
        assert client.delete(path).json()["compositions"][7]["items"] == []
        assert client.delete(path).status_code == 404

    def test_update_composition_bdi(self, client):
        budget = _create(client)
        comp_id = _composition_id(budget, "materials")
        response = client.put(
            f"/api/budgets/{budget['id']}/compositions/{comp_id}",
            json={"bdi": {"administrative": 15, "commercial": 5, "financial": 5, "indirectTaxes": 5}},
        )
        assert response.status_code == 200
        comp = response.json()["compositions"][7]
        assert comp["bdi"]["total"] == 30.0
        assert comp["name"] == "Materiais"


class TestDerivedViews:

    @pytest.fixture
    def costed_budget(self, client):
        budget = _create(client, taxConfig={"hasISS": True, "issRate": 5, "simplesRate": 6})
        comp_id = _composition_id(budget, "materials")
        for unit_value in (650, 200, 90, 60):
            client.post(
                f"/api/budgets/{budget['id']}/compositions/{comp_id}/items",
                json={"quantity": 1, "unitValue": unit_value},
            )
        return budget["id"], comp_id

    def test_dre(self, client, costed_budget):
        budget_id, _ = costed_budget
        dre = client.get(f"/api/budgets/{budget_id}/dre").json()
        assert dre["custoDirectoTotal"] == 1000.0
        assert dre["bdiTotal"] == 250.0
        assert dre["valorIss"] == 62.5
        assert dre["valorSimples"] == 75.0
        assert dre["viabilidade"] == "Prejuízo"

    def test_abc(self, client, costed_budget):
        budget_id, comp_id = costed_budget
        abc = client.get(f"/api/budgets/{budget_id}/abc").json()
        assert abc["budgetId"] == budget_id
        assert len(abc["compositions"]) == 8
        materials = next(c for c in abc["compositions"] if c["compositionId"] == comp_id)
        assert [i["classeAbc"] for i in materials["itensClassificados"]] == ["A", "B", "B", "C"]
        assert materials["grupoA"]["percentual"] == 65.0

    def test_alerts(self, client, costed_budget):
        budget_id, _ = costed_budget
        alerts = client.get(f"/api/budgets/{budget_id}/alerts").json()
        assert alerts[0]["tipo"] == "erro"
        assert alerts[0]["mensagem"].startswith("PREJUÍZO")


class TestRoundOutput:

    def test_rounds_nested_floats_only(self):
        data = {"a": 1.23456, "b": [2.5551, {"c": 3.0049}], "flag": True, "n": 7, "s": "x"}
        assert round_output(data) == {"a": 1.23, "b": [2.56, {"c": 3.0}], "flag": True, "n": 7, "s": "x"}


class TestPartialEdits:

    def test_switching_iss_keeps_stored_rates(self, client):
        budget = _create(client, taxConfig={"hasISS": False, "issRate": 5, "simplesRate": 6})
        response = client.put(f"/api/budgets/{budget['id']}", json={"taxConfig": {"hasISS": True}})
        assert response.status_code == 200
        assert response.json()["taxConfig"] == {"hasISS": True, "issRate": 5.0, "simplesRate": 6.0}

    def test_partial_bdi_keeps_other_parts(self, client):
        budget = _create(client)
        comp_id = _composition_id(budget, "materials")
        response = client.put(
            f"/api/budgets/{budget['id']}/compositions/{comp_id}",
            json={"bdi": {"administrative": 14}},
        )
        bdi = response.json()["compositions"][7]["bdi"]
        assert bdi == {"administrative": 14.0, "commercial": 5.0, "financial": 3.0,
                       "indirectTaxes": 5.0, "total": 27.0}

    def test_blank_composition_name_rejected_and_not_stored(self, client):
        budget = _create(client)
        comp_id = _composition_id(budget, "materials")
        response = client.put(f"/api/budgets/{budget['id']}/compositions/{comp_id}", json={"name": "   "})
        assert response.status_code == 422
        assert response.json()["detail"] == {"field": "name", "message": "Nome da composição é obrigatório"}
        assert client.get(f"/api/budgets/{budget['id']}/calculate").status_code == 200


class TestClientFilter:

    def test_list_filtered_by_client(self, client):
        _create(client, name="Galpão", clientName="Metalúrgica Sul")
        _create(client, name="Mezanino", clientName="Construtora Norte")
        names = [b["name"] for b in client.get("/api/budgets", params={"clientName": "Metalúrgica Sul"}).json()]
        assert names == ["Galpão"]
        assert len(client.get("/api/budgets").json()) == 2


class TestRequestLogging:

    @pytest.mark.parametrize("path, expected", [
        ("/api/budgets/orc-1", {"budget_id": "orc-1"}),
        ("/api/budgets/orc-1/dre", {"budget_id": "orc-1"}),
        ("/api/budgets/orc-1/compositions/c-7/items", {"budget_id": "orc-1", "composition_id": "c-7"}),
        ("/api/budgets/calculate", {}),
        ("/api/budgets/next-number", {}),
        ("/api/budgets", {}),
        ("/health", {}),
    ])
    def test_budget_context(self, path, expected):
        assert budget_context(path) == expected

    def test_request_log_carries_budget_id(self, client, caplog):
        budget = _create(client)
        with caplog.at_level(logging.INFO, logger="orcamento-api.middleware"):
            caplog.clear()
            client.get(f"/api/budgets/{budget['id']}/dre", headers={"X-Request-ID": "req-9"})
        record = next(r for r in caplog.records if r.name == "orcamento-api.middleware")
        assert record.budget_id == budget["id"]
        assert record.request_id == "req-9"
        assert record.http_status == 200

    def test_missing_budget_logged_as_warning(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="orcamento-api.middleware"):
            client.get("/api/budgets/missing")
        record = next(r for r in caplog.records if r.name == "orcamento-api.middleware")
        assert record.levelno == logging.WARNING
        assert record.budget_id == "missing"
