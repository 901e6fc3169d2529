"""Data models for the workflow rules engine.

Rule definitions are pydantic documents: they arrive from the authoring
surface or from storage as JSON/YAML and are read-only inputs to the engine.
The execution context and every result type are plain dataclasses that the
caller owns and may persist via ``to_dict()``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator
from pydantic.alias_generators import to_camel, to_snake

from rcm_workflow.config import DEFAULT_RULE_PRIORITY


class RuleOperator(str, Enum):
    """Comparison operators available to rule conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUALS = "greater_than_or_equals"
    LESS_THAN_OR_EQUALS = "less_than_or_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IN_LIST = "in_list"
    NOT_IN_LIST = "not_in_list"
    BETWEEN = "between"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    REGEX = "regex"
    DAYS_SINCE_GREATER_THAN = "days_since_greater_than"
    DAYS_SINCE_LESS_THAN = "days_since_less_than"
    BUSINESS_DAYS_SINCE_GREATER_THAN = "business_days_since_greater_than"
    BUSINESS_DAYS_SINCE_LESS_THAN = "business_days_since_less_than"


class LogicalOperator(str, Enum):
    """How sibling conditions are combined."""

    AND = "AND"
    OR = "OR"


class RuleTriggerType(str, Enum):
    """Events that make a rule eligible for evaluation."""

    ON_CREATE = "on_create"
    ON_UPDATE = "on_update"
    ON_STATUS_CHANGE = "on_status_change"
    ON_FIELD_CHANGE = "on_field_change"
    SCHEDULED = "scheduled"
    MANUAL = "manual"
    ON_PAYMENT_POSTED = "on_payment_posted"
    ON_DENIAL_RECEIVED = "on_denial_received"
    ON_CLAIM_SUBMITTED = "on_claim_submitted"
    ON_DEADLINE_APPROACHING = "on_deadline_approaching"
    ON_ASSIGNMENT_CHANGE = "on_assignment_change"
    WEBHOOK = "webhook"


class RuleActionType(str, Enum):
    """Action types a rule may dispatch."""

    ASSIGN_QUEUE = "assign_queue"
    SEND_NOTIFICATION = "send_notification"
    UPDATE_FIELD = "update_field"
    CREATE_TASK = "create_task"
    ESCALATE = "escalate"
    TRIGGER_WEBHOOK = "trigger_webhook"
    DELAY = "delay"
    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    ADD_NOTE = "add_note"
    SET_PRIORITY = "set_priority"
    ASSIGN_USER = "assign_user"
    CREATE_FOLLOW_UP = "create_follow_up"
    RUN_SCRIPT = "run_script"
    STOP_PROCESSING = "stop_processing"


# --- Rule documents ---


class RuleDocument(BaseModel):
    """Base for rule documents: snake_case fields, camelCase aliases accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class RuleCondition(RuleDocument):
    """A single predicate comparing an entity field against a value."""

    id: str | None = None
    field: str
    operator: str
    # Unset and None differ: only is_null/is_not_null may omit a value
    value: Any = None
    case_insensitive: bool = False
    negate: bool = False


class RuleConditionGroup(RuleDocument):
    """A nested AND/OR composition of conditions and groups."""

    id: str | None = None
    logical_operator: LogicalOperator = LogicalOperator.AND
    conditions: list[ConditionItem] = Field(default_factory=list)


def _condition_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "group" if isinstance(value.get("conditions"), list) else "leaf"
    return "group" if isinstance(value, RuleConditionGroup) else "leaf"


ConditionItem = Annotated[
    Union[
        Annotated[RuleCondition, Tag("leaf")],
        Annotated[RuleConditionGroup, Tag("group")],
    ],
    Discriminator(_condition_kind),
]

RuleConditionGroup.model_rebuild()


def is_condition_group(condition: RuleCondition | RuleConditionGroup) -> bool:
    return isinstance(condition, RuleConditionGroup)


class RuleTrigger(RuleDocument):
    """The event class that makes a rule applicable."""

    type: str
    entity_type: str | None = None
    watch_fields: list[str] = Field(default_factory=list)
    from_status: list[str] = Field(default_factory=list)
    to_status: list[str] = Field(default_factory=list)
    schedule: str | None = None
    timezone: str | None = None
    days_before_deadline: int | None = None
    webhook_path: str | None = None


class RuleAction(RuleDocument):
    """A parameterized side effect dispatched to a registered handler."""

    id: str | None = None
    type: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    order: int = 0
    continue_on_error: bool = False
    delay_ms: int | None = None

    @field_validator("parameters", mode="before")
    @classmethod
    def normalize_parameter_keys(cls, v: Any) -> Any:
        """Accept camelCase parameter keys from the authoring surface."""
        return normalize_parameters(v)


def normalize_parameters(parameters: Any) -> Any:
    if not isinstance(parameters, dict):
        return parameters
    return {to_snake(str(key)): value for key, value in parameters.items()}


class WorkflowRule(RuleDocument):
    """Complete workflow rule definition."""

    id: str | None = None
    name: str
    description: str | None = None
    trigger: RuleTrigger
    conditions: list[ConditionItem] = Field(default_factory=list)
    conditions_operator: LogicalOperator = LogicalOperator.AND
    actions: list[RuleAction] = Field(default_factory=list)
    priority: int = DEFAULT_RULE_PRIORITY
    is_active: bool = False
    effective_from: datetime | None = None
    effective_to: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    version: int | None = None
    organization_id: str | None = None
    created_by: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


# --- Execution context ---


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RuleExecutionContext:
    """Per-event inputs for one orchestration pass.

    ``entity`` belongs to the caller and is mutated in place by actions;
    ``previous_entity`` is a read-only snapshot for change triggers.
    """

    entity: dict[str, Any]
    trigger: str
    entity_type: str
    entity_id: str | None = None
    previous_entity: dict[str, Any] | None = None
    changed_fields: list[str] | None = None
    timestamp: datetime = field(default_factory=utc_now)
    user_id: str | None = None
    organization_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.trigger, Enum):
            self.trigger = self.trigger.value
        self.timestamp = ensure_aware(self.timestamp)


# --- Results ---


def to_jsonable(value: Any) -> Any:
    """Convert evaluation values into JSON-safe data for audit storage."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return str(value)


@dataclass
class ConditionEvaluationResult:
    """Outcome of one leaf condition or one group."""

    condition: RuleCondition | RuleConditionGroup
    passed: bool
    actual_value: Any = None
    expected_value: Any = None
    error: str | None = None
    results: list[ConditionEvaluationResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": to_jsonable(self.condition),
            "passed": self.passed,
            "actual_value": to_jsonable(self.actual_value),
            "expected_value": to_jsonable(self.expected_value),
            "error": self.error,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class ActionExecutionResult:
    """Outcome of dispatching a single action."""

    action: RuleAction
    success: bool
    result: Any = None
    error: str | None = None
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": to_jsonable(self.action),
            "success": self.success,
            "result": to_jsonable(self.result),
            "error": self.error,
            "execution_time_ms": self.execution_time_ms,
        }


@dataclass
class RuleExecutionResult:
    """Full audit record of one rule against one context."""

    rule: WorkflowRule
    triggered: bool
    conditions_passed: bool
    condition_results: list[ConditionEvaluationResult] = field(default_factory=list)
    actions_executed: bool = False
    action_results: list[ActionExecutionResult] = field(default_factory=list)
    execution_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=utc_now)
    error: str | None = None

    @property
    def stopped_processing(self) -> bool:
        return any(
            r.success and r.action.type == RuleActionType.STOP_PROCESSING.value
            for r in self.action_results
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule.id,
            "rule_name": self.rule.name,
            "triggered": self.triggered,
            "conditions_passed": self.conditions_passed,
            "condition_results": [r.to_dict() for r in self.condition_results],
            "actions_executed": self.actions_executed,
            "action_results": [r.to_dict() for r in self.action_results],
            "execution_time_ms": self.execution_time_ms,
            "timestamp": self.timestamp.isoformat(),
            "error": self.error,
        }


@dataclass(frozen=True)
class RuleValidationError:
    """A single structural problem found in a rule or action definition."""

    path: str
    message: str
    code: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message, "code": self.code}


@dataclass
class RuleValidationResult:
    is_valid: bool
    errors: list[RuleValidationError] = field(default_factory=list)
    warnings: list[RuleValidationError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }
