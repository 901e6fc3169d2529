"""Action handler registry.

Each engine owns a registry mapping an action type to the handler that
performs it. Handlers are registered once at startup and the registry is
then frozen, so concurrent passes only ever read it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from .models import RuleAction, RuleExecutionContext

logger = logging.getLogger(__name__)

# Handlers may be plain functions or coroutines returning ActionExecutionResult
ActionHandler = Callable[[RuleAction, RuleExecutionContext], Any]


class RegistryFrozenError(RuntimeError):
    """Raised when a frozen registry is modified."""


def _key(action_type: str | Enum) -> str:
    return action_type.value if isinstance(action_type, Enum) else str(action_type)


class ActionHandlerRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Disallow further registration changes."""
        self._frozen = True

    def _check_writable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Action handler registry is frozen")

    def register(self, action_type: str | Enum, handler: ActionHandler) -> None:
        """Register ``handler`` for ``action_type``, replacing any existing one."""
        self._check_writable()
        key = _key(action_type)
        if key in self._handlers:
            logger.warning(f"Overwriting existing action handler for {key}")
        self._handlers[key] = handler
        logger.debug(f"Registered action handler: {key}")

    def unregister(self, action_type: str | Enum) -> None:
        self._check_writable()
        self._handlers.pop(_key(action_type), None)

    def get(self, action_type: str | Enum) -> ActionHandler | None:
        return self._handlers.get(_key(action_type))

    def is_registered(self, action_type: str | Enum) -> bool:
        return _key(action_type) in self._handlers

    def registered_types(self) -> list[str]:
        return sorted(self._handlers)
