"""Workflow rule authoring routes.

This router backs the rule builder: operator catalogue, rule validation,
dry-run testing against a sample entity, and rule templates. Rules are not
stored here; persistence belongs to the host service.
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from slowapi import Limiter
from slowapi.util import get_remote_address

from rcm_workflow.config import DRY_RUN_RATE_LIMIT
from rcm_workflow.rules import (
    RuleActionType,
    RuleExecutionContext,
    RuleOperator,
    RuleTriggerType,
    WorkflowEngine,
    WorkflowRule,
    get_default_engine,
    validate_action_parameters,
    validate_rule,
)
from rcm_workflow.rules.models import utc_now
from rcm_workflow.templates import (
    create_rule_from_template,
    get_template,
    get_template_categories,
    get_template_list,
    search_templates,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workflow", tags=["workflow"])

limiter = Limiter(key_func=get_remote_address)


class DryRunContext(BaseModel):
    """Sample event a rule is dry-run against."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entity: dict[str, Any]
    entity_type: str
    trigger: str | None = None
    entity_id: str | None = None
    previous_entity: dict[str, Any] | None = None
    changed_fields: list[str] | None = None
    timestamp: datetime | None = None
    user_id: str | None = None
    organization_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class DryRunRequest(BaseModel):
    rule: dict[str, Any]
    context: DryRunContext


class ApplyTemplateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = None
    priority: int | None = None
    is_active: bool = False
    organization_id: str | None = None
    created_by: str | None = None
    parameter_values: dict[str, Any] = Field(default_factory=dict)


def _engine(request: Request) -> WorkflowEngine:
    return getattr(request.app.state, "engine", None) or get_default_engine()


def _action_errors(rule: dict[str, Any]) -> list[dict[str, str]]:
    errors = []
    actions = rule.get("actions")
    if not isinstance(actions, list):
        return errors
    for index, action in enumerate(actions):
        if not isinstance(action, dict):
            continue
        for error in validate_action_parameters(action):
            entry = error.to_dict()
            entry["path"] = f"actions[{index}].{error.path}"
            errors.append(entry)
    return errors


@router.get("/operators")
async def list_operators():
    """List the condition operators, trigger types and action types."""
    return {
        "operators": [op.value for op in RuleOperator],
        "trigger_types": [t.value for t in RuleTriggerType],
        "action_types": [a.value for a in RuleActionType],
    }


@router.post("/rules/validate")
async def validate_rule_definition(rule: dict[str, Any] = Body(...)):
    """Validate a rule document before it is saved or activated.

    Returns structural errors, soft warnings, and missing action parameters.
    """
    result = validate_rule(rule)
    return {**result.to_dict(), "action_errors": _action_errors(rule)}


@router.post("/rules/test")
@limiter.limit(DRY_RUN_RATE_LIMIT)
async def dry_run_rule(request: Request, dry_run_request: DryRunRequest):
    """Dry-run a rule against a sample entity.

    Evaluates the trigger and conditions only; no action is dispatched and the
    sample entity is left untouched. Inactive (draft) rules are evaluated as
    if active.
    """
    validation = validate_rule(dry_run_request.rule)
    if not validation.is_valid:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Rule failed validation",
                "errors": [e.to_dict() for e in validation.errors],
            },
        )

    try:
        rule = WorkflowRule.model_validate(dry_run_request.rule)
    except ValidationError as e:
        raise HTTPException(
            status_code=422, detail={"message": "Invalid rule", "errors": e.errors()}
        )

    ctx = dry_run_request.context
    context = RuleExecutionContext(
        entity=ctx.entity,
        trigger=ctx.trigger or rule.trigger.type,
        entity_type=ctx.entity_type,
        entity_id=ctx.entity_id or "test_entity",
        previous_entity=ctx.previous_entity,
        changed_fields=ctx.changed_fields,
        timestamp=ctx.timestamp or utc_now(),
        user_id=ctx.user_id,
        organization_id=ctx.organization_id,
        metadata=ctx.metadata,
    )

    try:
        result = _engine(request).dry_run(rule.model_copy(update={"is_active": True}), context)
    except Exception as e:
        logger.error(f"Dry run of rule '{rule.name}' failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail=f"Failed to test rule: {str(e)[:200]}"
        )

    return {**result.to_dict(), "dry_run": True}


@router.get("/templates")
async def list_templates(q: str | None = None):
    """List rule templates, optionally filtered by a search query."""
    templates = search_templates(q) if q else get_template_list()
    return {"templates": templates, "categories": get_template_categories()}


@router.get("/templates/{template_id}")
async def get_rule_template(template_id: str):
    """Get a rule template with its conditions, actions and parameters."""
    template = get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Template not found: {template_id}")
    return template


@router.post("/templates/{template_id}/apply")
async def apply_rule_template(template_id: str, apply_request: ApplyTemplateRequest):
    """Instantiate a rule document from a template and validate it."""
    try:
        rule = create_rule_from_template(
            template_id,
            name=apply_request.name,
            priority=apply_request.priority,
            is_active=apply_request.is_active,
            organization_id=apply_request.organization_id,
            created_by=apply_request.created_by,
            parameter_values=apply_request.parameter_values,
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    validation = validate_rule(rule)
    return {
        "rule": rule,
        "validation": {**validation.to_dict(), "action_errors": _action_errors(rule)},
    }
