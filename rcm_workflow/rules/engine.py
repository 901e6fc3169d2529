"""Core workflow rule execution engine."""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Sequence

from rcm_workflow.config import ACTION_TIMEOUT_SECONDS, MAX_ACTION_DELAY_MS

from .actions import register_builtin_handlers
from .conditions import evaluate_conditions
from .models import (
    ActionExecutionResult,
    ConditionEvaluationResult,
    RuleAction,
    RuleActionType,
    RuleExecutionContext,
    RuleExecutionResult,
    WorkflowRule,
    utc_now,
)
from .registry import ActionHandler, ActionHandlerRegistry
from .triggers import trigger_mismatch_reason

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


class WorkflowEngine:
    """Evaluates rules against execution contexts and dispatches their actions.

    Actions and rules always run one at a time, in order: actions may mutate
    the shared entity and later actions or rules may depend on that.
    """

    def __init__(
        self,
        registry: ActionHandlerRegistry | None = None,
        *,
        action_timeout_seconds: float | None = ACTION_TIMEOUT_SECONDS,
        max_action_delay_ms: int = MAX_ACTION_DELAY_MS,
    ) -> None:
        if registry is None:
            registry = ActionHandlerRegistry()
            register_builtin_handlers(registry)
        self.registry = registry
        self.action_timeout_seconds = action_timeout_seconds
        self.max_action_delay_ms = max_action_delay_ms

    def register_action_handler(self, action_type: str, handler: ActionHandler) -> None:
        self.registry.register(action_type, handler)

    def freeze(self) -> None:
        """Lock the handler registry once startup registration is done."""
        self.registry.freeze()

    # --- Actions ---

    def _delay_seconds(self, action: RuleAction) -> float:
        delay_ms = action.delay_ms or 0
        if delay_ms <= 0:
            return 0.0
        if delay_ms > self.max_action_delay_ms:
            logger.warning(
                f"Action {action.type} delay of {delay_ms}ms clamped to {self.max_action_delay_ms}ms"
            )
            delay_ms = self.max_action_delay_ms
        return delay_ms / 1000

    async def _invoke(
        self, handler: ActionHandler, action: RuleAction, context: RuleExecutionContext
    ) -> object:
        outcome = handler(action, context)
        if inspect.isawaitable(outcome):
            if self.action_timeout_seconds:
                outcome = await asyncio.wait_for(outcome, self.action_timeout_seconds)
            else:
                outcome = await outcome
        return outcome

    async def execute_action(
        self, action: RuleAction, context: RuleExecutionContext
    ) -> ActionExecutionResult:
        """Run one action; failures come back as results, never as exceptions."""
        start = time.perf_counter()
        try:
            delay = self._delay_seconds(action)
            if delay > 0:
                await asyncio.sleep(delay)

            handler = self.registry.get(action.type)
            if handler is None:
                logger.warning(f"No handler registered for action type: {action.type}")
                return ActionExecutionResult(
                    action=action,
                    success=False,
                    error=f"No handler registered for action type: {action.type}",
                    execution_time_ms=_elapsed_ms(start),
                )

            outcome = await self._invoke(handler, action, context)
            if isinstance(outcome, ActionExecutionResult):
                result = outcome
            else:
                result = ActionExecutionResult(action=action, success=True, result=outcome)
            result.execution_time_ms = _elapsed_ms(start)
            return result

        except asyncio.TimeoutError:
            logger.warning(
                f"Action {action.type} timed out after {self.action_timeout_seconds}s"
            )
            return ActionExecutionResult(
                action=action,
                success=False,
                error=f"Action timed out after {self.action_timeout_seconds}s",
                execution_time_ms=_elapsed_ms(start),
            )
        except Exception as e:
            logger.warning(f"Action {action.type} raised: {e}", exc_info=True)
            return ActionExecutionResult(
                action=action,
                success=False,
                error=str(e) or type(e).__name__,
                execution_time_ms=_elapsed_ms(start),
            )

    async def execute_actions(
        self, actions: Sequence[RuleAction], context: RuleExecutionContext
    ) -> list[ActionExecutionResult]:
        """Run actions sequentially by ``order``, honouring the stop policy."""
        results: list[ActionExecutionResult] = []

        for action in sorted(actions, key=lambda a: a.order):
            result = await self.execute_action(action, context)
            results.append(result)

            if not result.success and not action.continue_on_error:
                break

            # A stop_processing that failed does not stop the list
            if action.type == RuleActionType.STOP_PROCESSING.value and result.success:
                break

        return results

    # --- Rules ---

    async def execute_rule(
        self, rule: WorkflowRule, context: RuleExecutionContext
    ) -> RuleExecutionResult:
        """Check the trigger, evaluate conditions, then run the rule's actions."""
        start = time.perf_counter()
        triggered = False
        conditions_passed = False
        condition_results: list[ConditionEvaluationResult] = []
        try:
            reason = trigger_mismatch_reason(rule, context)
            if reason is not None:
                logger.debug(f"Rule '{rule.name}' not triggered: {reason}")
                return RuleExecutionResult(
                    rule=rule,
                    triggered=False,
                    conditions_passed=False,
                    execution_time_ms=_elapsed_ms(start),
                    timestamp=utc_now(),
                )

            triggered = True
            conditions_passed, condition_results = evaluate_conditions(
                rule.conditions, context, rule.conditions_operator
            )
            if not conditions_passed:
                logger.debug(f"Rule '{rule.name}' conditions not met")
                return RuleExecutionResult(
                    rule=rule,
                    triggered=True,
                    conditions_passed=False,
                    condition_results=condition_results,
                    execution_time_ms=_elapsed_ms(start),
                    timestamp=utc_now(),
                )

            action_results = await self.execute_actions(rule.actions, context)
            return RuleExecutionResult(
                rule=rule,
                triggered=True,
                conditions_passed=True,
                condition_results=condition_results,
                actions_executed=len(action_results) > 0,
                action_results=action_results,
                execution_time_ms=_elapsed_ms(start),
                timestamp=utc_now(),
            )
        except Exception as e:
            logger.error(f"Rule '{rule.name}' failed unexpectedly: {e}", exc_info=True)
            return RuleExecutionResult(
                rule=rule,
                triggered=triggered,
                conditions_passed=conditions_passed,
                condition_results=condition_results,
                execution_time_ms=_elapsed_ms(start),
                timestamp=utc_now(),
                error=str(e) or type(e).__name__,
            )

    async def execute_rules(
        self, rules: Sequence[WorkflowRule], context: RuleExecutionContext
    ) -> list[RuleExecutionResult]:
        """Run rules by ascending priority until one stops processing."""
        results: list[RuleExecutionResult] = []

        for rule in sorted(rules, key=lambda r: r.priority):
            result = await self.execute_rule(rule, context)
            results.append(result)
            if result.stopped_processing:
                logger.info(f"Rule '{rule.name}' stopped processing for {context.entity_type}")
                break

        fired = sum(1 for r in results if r.actions_executed)
        logger.info(
            f"Evaluated {len(results)} of {len(rules)} rule(s) for {context.trigger} "
            f"on {context.entity_type}; {fired} fired"
        )
        return results

    def dry_run(self, rule: WorkflowRule, context: RuleExecutionContext) -> RuleExecutionResult:
        """Evaluate trigger and conditions without dispatching any action."""
        start = time.perf_counter()
        reason = trigger_mismatch_reason(rule, context)
        if reason is not None:
            return RuleExecutionResult(
                rule=rule,
                triggered=False,
                conditions_passed=False,
                execution_time_ms=_elapsed_ms(start),
                timestamp=utc_now(),
            )

        conditions_passed, condition_results = evaluate_conditions(
            rule.conditions, context, rule.conditions_operator
        )
        return RuleExecutionResult(
            rule=rule,
            triggered=True,
            conditions_passed=conditions_passed,
            condition_results=condition_results,
            execution_time_ms=_elapsed_ms(start),
            timestamp=utc_now(),
        )


_default_engine: WorkflowEngine | None = None


def get_default_engine() -> WorkflowEngine:
    """Return the shared engine holding only the built-in handlers."""
    global _default_engine
    if _default_engine is None:
        _default_engine = WorkflowEngine()
    return _default_engine
