"""Structural validation of rule definitions.

Validation is the gate a rule passes before it may be activated. It works on
raw documents (as authored, snake_case or camelCase) as well as on parsed
``WorkflowRule`` models, and reports problems instead of raising.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from .models import (
    LogicalOperator,
    RuleAction,
    RuleActionType,
    RuleOperator,
    RuleTriggerType,
    RuleValidationError,
    RuleValidationResult,
    WorkflowRule,
    normalize_parameters,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELD = "REQUIRED_FIELD"
INVALID_VALUE = "INVALID_VALUE"
NO_CONDITIONS = "NO_CONDITIONS"
DEFAULT_VALUE = "DEFAULT_VALUE"
UNKNOWN_OPERATOR = "UNKNOWN_OPERATOR"

VALUELESS_OPERATORS = {RuleOperator.IS_NULL.value, RuleOperator.IS_NOT_NULL.value}
KNOWN_OPERATORS = {op.value for op in RuleOperator}
LOGICAL_OPERATORS = {op.value for op in LogicalOperator}

# Required parameter keys per action type, with the label used in messages
REQUIRED_ACTION_PARAMETERS: dict[str, list[tuple[str, str]]] = {
    RuleActionType.ASSIGN_QUEUE.value: [("queue_id", "Queue ID")],
    RuleActionType.SEND_NOTIFICATION.value: [
        ("recipient_type", "Recipient type"),
        ("message", "Message"),
    ],
    RuleActionType.UPDATE_FIELD.value: [("field_path", "Field path")],
    RuleActionType.CREATE_TASK.value: [("task_type", "Task type"), ("title", "Title")],
    RuleActionType.ESCALATE.value: [("escalation_type", "Escalation type"), ("reason", "Reason")],
    RuleActionType.TRIGGER_WEBHOOK.value: [("url", "URL")],
    RuleActionType.SEND_EMAIL.value: [("to", "Recipient"), ("subject", "Subject")],
    RuleActionType.SEND_SMS.value: [("to", "Recipient"), ("message", "Message")],
    RuleActionType.ASSIGN_USER.value: [("assignment_method", "Assignment method")],
    RuleActionType.CREATE_FOLLOW_UP.value: [
        ("follow_up_type", "Follow-up type"),
        ("title", "Title"),
    ],
    RuleActionType.RUN_SCRIPT.value: [("script_id", "Script ID")],
    RuleActionType.SET_PRIORITY.value: [("priority", "Priority")],
    RuleActionType.ADD_NOTE.value: [("note", "Note")],
}


def _lookup(doc: Mapping[str, Any], snake: str, camel: str | None = None) -> Any:
    if snake in doc:
        return doc[snake]
    if camel and camel in doc:
        return doc[camel]
    return None


def _as_document(rule: Mapping[str, Any] | WorkflowRule) -> Mapping[str, Any]:
    if not isinstance(rule, WorkflowRule):
        return rule
    doc = rule.model_dump(mode="json")
    # Conditions keep the unset view so an omitted value stays distinguishable from null
    doc["conditions"] = rule.model_dump(mode="json", exclude_unset=True).get("conditions", [])
    return doc


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return isinstance(value, (list, dict)) and not value


def _is_group(condition: Any) -> bool:
    return isinstance(condition, Mapping) and isinstance(condition.get("conditions"), list)


def _validate_conditions(
    conditions: Sequence[Any],
    prefix: str,
    errors: list[RuleValidationError],
    warnings: list[RuleValidationError],
) -> None:
    for index, condition in enumerate(conditions):
        path = f"{prefix}[{index}]"
        if not isinstance(condition, Mapping):
            errors.append(
                RuleValidationError(path, "Condition must be an object", INVALID_VALUE)
            )
            continue

        if _is_group(condition):
            logical = _lookup(condition, "logical_operator", "logicalOperator")
            if logical is not None and logical not in LOGICAL_OPERATORS:
                errors.append(
                    RuleValidationError(
                        f"{path}.logical_operator",
                        "Logical operator must be AND or OR",
                        INVALID_VALUE,
                    )
                )
            _validate_conditions(condition["conditions"], f"{path}.conditions", errors, warnings)
            continue

        operator = condition.get("operator")
        if not condition.get("field"):
            errors.append(
                RuleValidationError(f"{path}.field", "Condition field is required", REQUIRED_FIELD)
            )
        if not operator:
            errors.append(
                RuleValidationError(
                    f"{path}.operator", "Condition operator is required", REQUIRED_FIELD
                )
            )
        elif operator not in KNOWN_OPERATORS:
            warnings.append(
                RuleValidationError(
                    f"{path}.operator",
                    f"Unknown operator '{operator}' will never match",
                    UNKNOWN_OPERATOR,
                )
            )
        if operator not in VALUELESS_OPERATORS and "value" not in condition:
            errors.append(
                RuleValidationError(
                    f"{path}.value",
                    "Condition value is required for this operator",
                    REQUIRED_FIELD,
                )
            )


def validate_rule(rule: Mapping[str, Any] | WorkflowRule) -> RuleValidationResult:
    """Check a rule definition for structural problems.

    Args:
        rule: Raw rule document or parsed WorkflowRule

    Returns:
        RuleValidationResult with hard errors and soft warnings
    """
    doc = _as_document(rule)
    errors: list[RuleValidationError] = []
    warnings: list[RuleValidationError] = []

    name = doc.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(RuleValidationError("name", "Rule name is required", REQUIRED_FIELD))

    trigger = doc.get("trigger")
    if not trigger:
        errors.append(RuleValidationError("trigger", "Rule trigger is required", REQUIRED_FIELD))
    elif not isinstance(trigger, Mapping):
        errors.append(RuleValidationError("trigger", "Rule trigger must be an object", INVALID_VALUE))
    else:
        trigger_type = trigger.get("type")
        if not trigger_type:
            errors.append(
                RuleValidationError("trigger.type", "Trigger type is required", REQUIRED_FIELD)
            )
        if trigger_type == RuleTriggerType.SCHEDULED.value and not trigger.get("schedule"):
            errors.append(
                RuleValidationError(
                    "trigger.schedule",
                    "Schedule is required for scheduled triggers",
                    REQUIRED_FIELD,
                )
            )

    conditions = doc.get("conditions")
    if not conditions:
        warnings.append(
            RuleValidationError(
                "conditions", "Rule has no conditions and will always execute", NO_CONDITIONS
            )
        )
    elif not isinstance(conditions, Sequence) or isinstance(conditions, str):
        errors.append(RuleValidationError("conditions", "Conditions must be a list", INVALID_VALUE))
    else:
        _validate_conditions(conditions, "conditions", errors, warnings)

    conditions_operator = _lookup(doc, "conditions_operator", "conditionsOperator")
    if conditions_operator is not None and conditions_operator not in LOGICAL_OPERATORS:
        errors.append(
            RuleValidationError(
                "conditions_operator", "Conditions operator must be AND or OR", INVALID_VALUE
            )
        )

    actions = doc.get("actions")
    if not actions:
        errors.append(
            RuleValidationError("actions", "At least one action is required", REQUIRED_FIELD)
        )
    elif not isinstance(actions, Sequence) or isinstance(actions, str):
        errors.append(RuleValidationError("actions", "Actions must be a list", INVALID_VALUE))
    else:
        for index, action in enumerate(actions):
            path = f"actions[{index}]"
            if not isinstance(action, Mapping):
                errors.append(RuleValidationError(path, "Action must be an object", INVALID_VALUE))
                continue
            if not action.get("type"):
                errors.append(
                    RuleValidationError(f"{path}.type", "Action type is required", REQUIRED_FIELD)
                )
            if action.get("parameters") is None:
                errors.append(
                    RuleValidationError(
                        f"{path}.parameters", "Action parameters are required", REQUIRED_FIELD
                    )
                )

    priority = doc.get("priority")
    if isinstance(priority, bool) or not isinstance(priority, (int, float)):
        errors.append(
            RuleValidationError(
                "priority", "Rule priority is required and must be a number", REQUIRED_FIELD
            )
        )

    if not isinstance(_lookup(doc, "is_active", "isActive"), bool):
        warnings.append(
            RuleValidationError("is_active", "Rule is_active defaults to false", DEFAULT_VALUE)
        )

    return RuleValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_action_parameters(
    action: Mapping[str, Any] | RuleAction,
) -> list[RuleValidationError]:
    """Check the parameters an action type needs are present and non-empty."""
    if isinstance(action, RuleAction):
        action_type = action.type
        params = action.parameters
    else:
        action_type = action.get("type")
        params = normalize_parameters(action.get("parameters")) or {}

    errors: list[RuleValidationError] = []
    for key, label in REQUIRED_ACTION_PARAMETERS.get(action_type, []):
        if _is_blank(params.get(key)):
            errors.append(
                RuleValidationError(
                    f"parameters.{key}",
                    f"{label} is required for {action_type} action",
                    REQUIRED_FIELD,
                )
            )
    return errors


@dataclass
class RuleImportResult:
    """Outcome of validating and parsing a batch of rule documents."""

    imported: list[WorkflowRule] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)


def import_rules(
    documents: Sequence[Mapping[str, Any]], *, validate_parameters: bool = True
) -> RuleImportResult:
    """Validate rule documents and parse those that pass.

    Args:
        documents: Raw rule documents, e.g. from a JSON export
        validate_parameters: Also enforce per-action-type required parameters

    Returns:
        RuleImportResult with parsed rules and per-document errors
    """
    outcome = RuleImportResult()

    for index, doc in enumerate(documents):
        if not isinstance(doc, Mapping):
            outcome.errors.append({"index": index, "name": None, "error": "Rule must be an object"})
            continue
        name = doc.get("name")

        validation = validate_rule(doc)
        messages = [e.message for e in validation.errors]
        if validate_parameters and validation.is_valid:
            for action_index, action in enumerate(doc.get("actions") or []):
                messages.extend(
                    f"actions[{action_index}].{e.path}: {e.message}"
                    for e in validate_action_parameters(action)
                )
        if messages:
            outcome.errors.append({"index": index, "name": name, "error": ", ".join(messages)})
            continue

        try:
            outcome.imported.append(WorkflowRule.model_validate(doc))
        except ValidationError as e:
            outcome.errors.append({"index": index, "name": name, "error": str(e)})

    logger.info(
        f"Imported {len(outcome.imported)} rule(s), rejected {len(outcome.errors)}"
    )
    return outcome
