"""Trigger applicability checks run before any condition is evaluated."""
from __future__ import annotations

from .models import (
    RuleExecutionContext,
    RuleTriggerType,
    WorkflowRule,
    ensure_aware,
)


def trigger_mismatch_reason(rule: WorkflowRule, context: RuleExecutionContext) -> str | None:
    """Return why ``rule`` does not apply to ``context``, or None if it does.

    Checks run in a fixed order and stop at the first failure: active flag,
    effective window, trigger type, entity type, then the status-change and
    field-change filters.
    """
    if not rule.is_active:
        return "inactive"

    if rule.effective_from and context.timestamp < ensure_aware(rule.effective_from):
        return "before_effective_from"
    if rule.effective_to and context.timestamp > ensure_aware(rule.effective_to):
        return "after_effective_to"

    trigger = rule.trigger
    if trigger.type != context.trigger:
        return "trigger_type"

    if trigger.entity_type and trigger.entity_type != context.entity_type:
        return "entity_type"

    if trigger.type == RuleTriggerType.ON_STATUS_CHANGE.value:
        previous_status = (context.previous_entity or {}).get("status")
        current_status = context.entity.get("status")
        if trigger.from_status and previous_status not in trigger.from_status:
            return "from_status"
        if trigger.to_status and current_status not in trigger.to_status:
            return "to_status"

    if trigger.type == RuleTriggerType.ON_FIELD_CHANGE.value:
        changed = set(context.changed_fields or [])
        if trigger.watch_fields and not changed.intersection(trigger.watch_fields):
            return "watch_fields"

    return None


def should_trigger_rule(rule: WorkflowRule, context: RuleExecutionContext) -> bool:
    """Decide whether ``rule`` is applicable to the event in ``context``."""
    return trigger_mismatch_reason(rule, context) is None
