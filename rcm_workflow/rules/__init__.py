"""Workflow rules engine for revenue cycle automation."""

from .accessor import get_nested_value, set_nested_value
from .actions import register_builtin_handlers
from .conditions import evaluate_condition, evaluate_condition_group, evaluate_conditions
from .engine import WorkflowEngine, get_default_engine
from .functions import BUILTIN_FUNCTIONS
from .models import (
    ActionExecutionResult,
    ConditionEvaluationResult,
    LogicalOperator,
    RuleAction,
    RuleActionType,
    RuleCondition,
    RuleConditionGroup,
    RuleExecutionContext,
    RuleExecutionResult,
    RuleOperator,
    RuleTrigger,
    RuleTriggerType,
    RuleValidationError,
    RuleValidationResult,
    WorkflowRule,
)
from .registry import ActionHandler, ActionHandlerRegistry, RegistryFrozenError
from .triggers import should_trigger_rule
from .validation import RuleImportResult, import_rules, validate_action_parameters, validate_rule

__all__ = [
    "get_nested_value",
    "set_nested_value",
    "register_builtin_handlers",
    "evaluate_condition",
    "evaluate_condition_group",
    "evaluate_conditions",
    "WorkflowEngine",
    "get_default_engine",
    "BUILTIN_FUNCTIONS",
    "ActionExecutionResult",
    "ConditionEvaluationResult",
    "LogicalOperator",
    "RuleAction",
    "RuleActionType",
    "RuleCondition",
    "RuleConditionGroup",
    "RuleExecutionContext",
    "RuleExecutionResult",
    "RuleOperator",
    "RuleTrigger",
    "RuleTriggerType",
    "RuleValidationError",
    "RuleValidationResult",
    "WorkflowRule",
    "ActionHandler",
    "ActionHandlerRegistry",
    "RegistryFrozenError",
    "should_trigger_rule",
    "RuleImportResult",
    "import_rules",
    "validate_action_parameters",
    "validate_rule",
]
