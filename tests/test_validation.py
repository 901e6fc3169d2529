"""Tests for rule validation and batch import."""

from __future__ import annotations

import pytest

from rcm_workflow.rules import (
    RuleAction,
    WorkflowRule,
    import_rules,
    validate_action_parameters,
    validate_rule,
)


@pytest.fixture
def valid_rule() -> dict:
    return {
        "name": "High-value claims",
        "trigger": {"type": "on_create", "entity_type": "claim"},
        "conditions": [{"field": "total_charges", "operator": "greater_than", "value": 10000}],
        "actions": [{"type": "assign_queue", "parameters": {"queue_id": "senior_billing"}}],
        "priority": 10,
        "is_active": True,
    }


def codes(errors) -> set[tuple[str, str]]:
    return {(e.path, e.code) for e in errors}


class TestValidateRule:
    """Tests for validate_rule."""

    def test_valid_rule(self, valid_rule):
        """Test a complete rule passes without warnings."""
        result = validate_rule(valid_rule)
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_empty_rule(self):
        """Test an empty document reports the missing essentials."""
        result = validate_rule({})
        paths = {e.path for e in result.errors}
        assert not result.is_valid
        assert {"name", "trigger", "actions"} <= paths

    def test_blank_name(self, valid_rule):
        """Test a whitespace-only name is missing."""
        valid_rule["name"] = "   "
        assert ("name", "REQUIRED_FIELD") in codes(validate_rule(valid_rule).errors)

    def test_scheduled_trigger_needs_schedule(self, valid_rule):
        """Test scheduled triggers require a schedule."""
        valid_rule["trigger"] = {"type": "scheduled"}
        assert ("trigger.schedule", "REQUIRED_FIELD") in codes(validate_rule(valid_rule).errors)

    def test_no_conditions_warns(self, valid_rule):
        """Test a rule without conditions is valid but warned about."""
        valid_rule["conditions"] = []
        result = validate_rule(valid_rule)
        assert result.is_valid
        assert ("conditions", "NO_CONDITIONS") in codes(result.warnings)

    def test_condition_fields_required(self, valid_rule):
        """Test field, operator and value are required on leaves."""
        valid_rule["conditions"] = [{}]
        result = validate_rule(valid_rule)
        assert {
            ("conditions[0].field", "REQUIRED_FIELD"),
            ("conditions[0].operator", "REQUIRED_FIELD"),
            ("conditions[0].value", "REQUIRED_FIELD"),
        } <= codes(result.errors)

    def test_null_checks_need_no_value(self, valid_rule):
        """Test is_null / is_not_null may omit value."""
        valid_rule["conditions"] = [
            {"field": "payer_id", "operator": "is_null"},
            {"field": "payer_id", "operator": "is_not_null"},
        ]
        assert validate_rule(valid_rule).is_valid

    def test_explicit_null_value_is_present(self, valid_rule):
        """Test a value of None counts as provided."""
        valid_rule["conditions"] = [{"field": "payer_id", "operator": "equals", "value": None}]
        assert validate_rule(valid_rule).is_valid

    def test_unknown_operator_warns(self, valid_rule):
        """Test unknown operators are warnings, not errors."""
        valid_rule["conditions"] = [{"field": "state", "operator": "sounds_like", "value": "TX"}]
        result = validate_rule(valid_rule)
        assert result.is_valid
        assert ("conditions[0].operator", "UNKNOWN_OPERATOR") in codes(result.warnings)

    def test_nested_group_paths(self, valid_rule):
        """Test errors inside groups carry their full path."""
        valid_rule["conditions"] = [
            {
                "logical_operator": "OR",
                "conditions": [
                    {"field": "state", "operator": "equals", "value": "TX"},
                    {"operator": "equals", "value": "FL"},
                ],
            }
        ]
        assert ("conditions[0].conditions[1].field", "REQUIRED_FIELD") in codes(
            validate_rule(valid_rule).errors
        )

    def test_invalid_logical_operators(self, valid_rule):
        """Test logical operators must be AND or OR."""
        valid_rule["conditions_operator"] = "XOR"
        valid_rule["conditions"] = [{"logicalOperator": "NAND", "conditions": []}]
        errors = codes(validate_rule(valid_rule).errors)
        assert ("conditions_operator", "INVALID_VALUE") in errors
        assert ("conditions[0].logical_operator", "INVALID_VALUE") in errors

    def test_action_needs_type_and_parameters(self, valid_rule):
        """Test each action needs a type and a parameters object."""
        valid_rule["actions"] = [{}]
        errors = codes(validate_rule(valid_rule).errors)
        assert ("actions[0].type", "REQUIRED_FIELD") in errors
        assert ("actions[0].parameters", "REQUIRED_FIELD") in errors

    @pytest.mark.parametrize("priority", [None, "high", True])
    def test_priority_must_be_number(self, valid_rule, priority):
        """Test priority must be numeric."""
        valid_rule["priority"] = priority
        assert ("priority", "REQUIRED_FIELD") in codes(validate_rule(valid_rule).errors)

    def test_missing_is_active_warns(self, valid_rule):
        """Test omitting is_active warns that it defaults to false."""
        del valid_rule["is_active"]
        result = validate_rule(valid_rule)
        assert result.is_valid
        assert ("is_active", "DEFAULT_VALUE") in codes(result.warnings)

    def test_camel_case_document(self, valid_rule):
        """Test camelCase keys are accepted."""
        valid_rule["isActive"] = valid_rule.pop("is_active")
        valid_rule["conditionsOperator"] = "OR"
        assert validate_rule(valid_rule).warnings == []

    def test_accepts_parsed_rule(self, valid_rule):
        """Test a parsed WorkflowRule validates like its document."""
        result = validate_rule(WorkflowRule.model_validate(valid_rule))
        assert result.is_valid

    def test_parsed_rule_uses_model_defaults(self, valid_rule):
        """Test defaulted priority and parameters on a parsed rule are not reported missing."""
        del valid_rule["priority"]
        valid_rule["actions"] = [{"type": "stop_processing"}]
        rule = WorkflowRule.model_validate(valid_rule)

        result = validate_rule(rule)
        assert rule.priority == 100
        assert result.is_valid, result.errors

    def test_parsed_rule_keeps_unset_condition_value(self, valid_rule):
        """Test a parsed condition without a value still needs one."""
        del valid_rule["conditions"][0]["value"]
        result = validate_rule(WorkflowRule.model_validate(valid_rule))
        assert ("conditions[0].value", "REQUIRED_FIELD") in codes(result.errors)

    def test_to_dict(self):
        """Test the result serializes for API responses."""
        data = validate_rule({}).to_dict()
        assert data["is_valid"] is False
        assert {"path", "message", "code"} == set(data["errors"][0])


class TestValidateActionParameters:
    """Tests for validate_action_parameters."""

    def test_assign_queue_requires_queue_id(self):
        """Test assign_queue needs a queue."""
        errors = validate_action_parameters({"type": "assign_queue", "parameters": {}})
        assert [e.path for e in errors] == ["parameters.queue_id"]
        assert errors[0].message == "Queue ID is required for assign_queue action"

    def test_camel_case_parameters(self):
        """Test camelCase parameter keys satisfy the check."""
        action = {"type": "escalate", "parameters": {"escalationType": "manager", "reason": "aged"}}
        assert validate_action_parameters(action) == []

    def test_empty_values_are_missing(self):
        """Test empty strings count as missing."""
        errors = validate_action_parameters(
            {"type": "send_email", "parameters": {"to": "", "subject": "Denial"}}
        )
        assert [e.path for e in errors] == ["parameters.to"]

    @pytest.mark.parametrize("priority", [0, 1])
    def test_zero_priority_is_present(self, priority):
        """Test a numeric zero satisfies a required parameter."""
        action = {"type": "set_priority", "parameters": {"priority": priority}}
        assert validate_action_parameters(action) == []

    def test_blank_text_is_missing(self):
        """Test whitespace-only text counts as missing."""
        errors = validate_action_parameters({"type": "add_note", "parameters": {"note": "  "}})
        assert [e.path for e in errors] == ["parameters.note"]

    def test_parsed_action(self):
        """Test RuleAction models are checked too."""
        errors = validate_action_parameters(RuleAction(type="create_task", parameters={"title": "x"}))
        assert [e.path for e in errors] == ["parameters.task_type"]

    def test_unconstrained_types(self):
        """Test types without requirements always pass."""
        assert validate_action_parameters({"type": "stop_processing", "parameters": {}}) == []


class TestImportRules:
    """Tests for import_rules."""

    def test_splits_valid_and_invalid(self, valid_rule):
        """Test valid documents import and invalid ones are reported."""
        outcome = import_rules([valid_rule, {"name": "Broken"}])
        assert [r.name for r in outcome.imported] == ["High-value claims"]
        assert outcome.errors[0]["index"] == 1
        assert outcome.errors[0]["name"] == "Broken"
        assert "Rule trigger is required" in outcome.errors[0]["error"]

    def test_parameter_checks(self, valid_rule):
        """Test missing action parameters reject the document."""
        valid_rule["actions"] = [{"type": "assign_queue", "parameters": {}}]
        outcome = import_rules([valid_rule])
        assert outcome.imported == []
        assert "Queue ID is required" in outcome.errors[0]["error"]

    def test_parameter_checks_optional(self, valid_rule):
        """Test parameter checks can be skipped."""
        valid_rule["actions"] = [{"type": "assign_queue", "parameters": {}}]
        assert len(import_rules([valid_rule], validate_parameters=False).imported) == 1

    def test_model_errors_reported(self, valid_rule):
        """Test documents that pass validation but not parsing are reported."""
        valid_rule["trigger"] = {"type": "on_create", "watch_fields": "not-a-list"}
        outcome = import_rules([valid_rule])
        assert outcome.imported == []
        assert outcome.errors[0]["index"] == 0
