"""Tests for the /api/workflow routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from rcm_workflow.app import app


@pytest.fixture
def client():
    """Test client with the app lifespan (engine startup) running."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def rule_doc() -> dict:
    return {
        "name": "High-value claims",
        "trigger": {"type": "on_create", "entityType": "claim"},
        "conditions": [{"field": "totalCharges", "operator": "greater_than", "value": 5000}],
        "actions": [{"type": "assign_queue", "parameters": {"queueId": "senior_billing"}}],
        "priority": 10,
        "isActive": False,
    }


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client: TestClient):
        """Test health reports the engine's handlers."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "update_field" in data["action_handlers"]


class TestOperators:
    """Tests for GET /api/workflow/operators."""

    def test_lists_catalogue(self, client: TestClient):
        """Test operators, trigger types and action types are listed."""
        data = client.get("/api/workflow/operators").json()
        assert "days_since_greater_than" in data["operators"]
        assert "on_denial_received" in data["trigger_types"]
        assert "stop_processing" in data["action_types"]


class TestValidateRoute:
    """Tests for POST /api/workflow/rules/validate."""

    def test_valid_rule(self, client: TestClient, rule_doc: dict):
        """Test a valid document reports no errors."""
        data = client.post("/api/workflow/rules/validate", json=rule_doc).json()
        assert data["is_valid"] is True
        assert data["errors"] == []
        assert data["action_errors"] == []

    def test_invalid_rule(self, client: TestClient):
        """Test an empty document lists its problems."""
        data = client.post("/api/workflow/rules/validate", json={}).json()
        assert data["is_valid"] is False
        assert {"name", "trigger", "actions"} <= {e["path"] for e in data["errors"]}

    def test_action_parameter_errors(self, client: TestClient, rule_doc: dict):
        """Test missing action parameters are reported with full paths."""
        rule_doc["actions"][0]["parameters"] = {}
        data = client.post("/api/workflow/rules/validate", json=rule_doc).json()
        assert data["action_errors"][0]["path"] == "actions[0].parameters.queue_id"


class TestDryRunRoute:
    """Tests for POST /api/workflow/rules/test."""

    def test_dry_run_passes(self, client: TestClient, rule_doc: dict):
        """Test a draft rule is evaluated without dispatching actions."""
        response = client.post(
            "/api/workflow/rules/test",
            json={
                "rule": rule_doc,
                "context": {"entity": {"totalCharges": 15000}, "entityType": "claim"},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["dry_run"] is True
        assert data["triggered"] is True
        assert data["conditions_passed"] is True
        assert data["action_results"] == []
        assert data["condition_results"][0]["actual_value"] == 15000

    def test_dry_run_conditions_fail(self, client: TestClient, rule_doc: dict):
        """Test failing conditions are reported."""
        response = client.post(
            "/api/workflow/rules/test",
            json={"rule": rule_doc, "context": {"entity": {"totalCharges": 100}, "entityType": "claim"}},
        )
        assert response.json()["conditions_passed"] is False

    def test_dry_run_trigger_mismatch(self, client: TestClient, rule_doc: dict):
        """Test an explicit non-matching trigger is not triggered."""
        response = client.post(
            "/api/workflow/rules/test",
            json={
                "rule": rule_doc,
                "context": {"entity": {}, "entityType": "claim", "trigger": "on_update"},
            },
        )
        assert response.json()["triggered"] is False

    def test_invalid_rule_rejected(self, client: TestClient):
        """Test an invalid rule returns 422 with validation errors."""
        response = client.post(
            "/api/workflow/rules/test",
            json={"rule": {"name": "x"}, "context": {"entity": {}, "entityType": "claim"}},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["message"] == "Rule failed validation"


class TestTemplateRoutes:
    """Tests for the template routes."""

    def test_list_templates(self, client: TestClient):
        """Test templates and categories are listed."""
        data = client.get("/api/workflow/templates").json()
        assert len(data["templates"]) >= 10
        assert "denial_management" in data["categories"]

    def test_search_templates(self, client: TestClient):
        """Test the q parameter filters templates."""
        data = client.get("/api/workflow/templates", params={"q": "medicare"}).json()
        assert [t["id"] for t in data["templates"]] == ["payer_specific_routing"]

    def test_get_template(self, client: TestClient):
        """Test a template is returned in full."""
        response = client.get("/api/workflow/templates/aging_escalation")
        assert response.status_code == 200
        assert response.json()["trigger"]["schedule"] == "0 6 * * 1"

    def test_get_missing_template(self, client: TestClient):
        """Test unknown templates are 404."""
        assert client.get("/api/workflow/templates/nope").status_code == 404

    def test_apply_template(self, client: TestClient):
        """Test applying a template returns a validated rule document."""
        response = client.post(
            "/api/workflow/templates/high_value_claim_routing/apply",
            json={"name": "Big claims", "parameterValues": {"threshold": 25000}},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["rule"]["name"] == "Big claims"
        assert data["rule"]["conditions"][0]["value"] == 25000
        assert data["validation"]["is_valid"] is True

    def test_apply_missing_template(self, client: TestClient):
        """Test applying an unknown template is 404."""
        response = client.post("/api/workflow/templates/nope/apply", json={})
        assert response.status_code == 404
