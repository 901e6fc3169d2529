"""Built-in action handlers.

Only actions that touch nothing but the entity in hand live here. Actions
that reach outside the engine (queues, notifications, webhooks, tasks, email)
are registered by the host service.
"""

from __future__ import annotations

import uuid
from typing import Any

from .accessor import get_nested_value, set_nested_value
from .coercion import to_number, to_string
from .models import (
    ActionExecutionResult,
    RuleAction,
    RuleActionType,
    RuleExecutionContext,
    utc_now,
)
from .registry import ActionHandlerRegistry


def _apply_operation(operation: str, current: Any, value: Any) -> Any:
    if operation == "increment":
        return to_number(current) + to_number(value)
    if operation == "decrement":
        return to_number(current) - to_number(value)
    if operation == "append":
        if isinstance(current, list):
            return [*current, value]
        return to_string(current) + to_string(value)
    if operation == "remove":
        if isinstance(current, list):
            return [item for item in current if item != value]
        return current
    # "set" and anything unrecognised
    return value


def update_field_handler(action: RuleAction, context: RuleExecutionContext) -> ActionExecutionResult:
    """Set, increment, decrement, append to or remove from an entity field."""
    params = action.parameters
    field_path = params.get("field_path") or ""
    operation = params.get("operation") or "set"

    old_value = get_nested_value(context.entity, field_path)
    new_value = _apply_operation(operation, old_value, params.get("value"))
    set_nested_value(context.entity, field_path, new_value)

    return ActionExecutionResult(
        action=action,
        success=True,
        result={"field_path": field_path, "old_value": old_value, "new_value": new_value},
    )


def add_note_handler(action: RuleAction, context: RuleExecutionContext) -> ActionExecutionResult:
    params = action.parameters
    notes = context.entity.get("notes") or []
    note = {
        "id": f"note_{uuid.uuid4().hex}",
        "content": params.get("note"),
        "type": params.get("note_type") or "general",
        "visibility": params.get("visibility") or "internal",
        "created_at": utc_now().isoformat(),
        "created_by": context.user_id,
    }
    context.entity["notes"] = [*notes, note]
    return ActionExecutionResult(action=action, success=True, result=note)


def set_priority_handler(action: RuleAction, context: RuleExecutionContext) -> ActionExecutionResult:
    params = action.parameters
    old_priority = context.entity.get("priority")
    context.entity["priority"] = params.get("priority")
    return ActionExecutionResult(
        action=action,
        success=True,
        result={
            "old_priority": old_priority,
            "new_priority": params.get("priority"),
            "reason": params.get("reason"),
        },
    )


def stop_processing_handler(action: RuleAction, context: RuleExecutionContext) -> ActionExecutionResult:
    """Signal the engine to stop; optionally mark the entity completed."""
    params = action.parameters
    mark_complete = bool(params.get("mark_complete"))
    if mark_complete:
        context.entity["status"] = "completed"
    return ActionExecutionResult(
        action=action,
        success=True,
        result={"reason": params.get("reason"), "marked_complete": mark_complete},
    )


BUILTIN_HANDLERS = {
    RuleActionType.UPDATE_FIELD: update_field_handler,
    RuleActionType.ADD_NOTE: add_note_handler,
    RuleActionType.SET_PRIORITY: set_priority_handler,
    RuleActionType.STOP_PROCESSING: stop_processing_handler,
}


def register_builtin_handlers(registry: ActionHandlerRegistry) -> None:
    """Register the handlers the engine ships with."""
    for action_type, handler in BUILTIN_HANDLERS.items():
        registry.register(action_type, handler)
