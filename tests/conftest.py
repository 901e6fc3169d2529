"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from rcm_workflow.rules import (
    ActionHandlerRegistry,
    RuleExecutionContext,
    WorkflowEngine,
    register_builtin_handlers,
)

# Fixed evaluation time so date operators are deterministic
REFERENCE_TIME = datetime(2024, 10, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_claim() -> dict[str, Any]:
    """Sample claim entity for testing."""
    return {
        "id": "CLM-001",
        "status": "submitted",
        "total_charges": 15000,
        "payer_id": "MEDICARE_B",
        "state": "TX",
        "patient": {"name": "Jane Smith", "mrn": "MRN-44812"},
        "service_date": "2024-06-30",
        "diagnosis_codes": ["J06.9", "M54.5"],
        "items": [
            {"procedure_code": "99214", "line_amount": 150.00},
            {"procedure_code": "99215", "line_amount": 200.00},
        ],
        "notes": [],
    }


@pytest.fixture
def sample_denial() -> dict[str, Any]:
    """Sample denial entity for testing."""
    return {
        "id": "DEN-001",
        "claim_id": "CLM-001",
        "carc_code": "16",
        "category": "ELIGIBILITY",
        "denied_amount": "$1,250.00",
        "received_at": "2024-09-03T14:00:00Z",
    }


@pytest.fixture
def make_context() -> Callable[..., RuleExecutionContext]:
    """Factory for execution contexts pinned to REFERENCE_TIME."""

    def _make(entity: dict[str, Any], **kwargs: Any) -> RuleExecutionContext:
        kwargs.setdefault("trigger", "on_create")
        kwargs.setdefault("entity_type", "claim")
        kwargs.setdefault("timestamp", REFERENCE_TIME)
        return RuleExecutionContext(entity=entity, **kwargs)

    return _make


@pytest.fixture
def claim_context(sample_claim, make_context) -> RuleExecutionContext:
    return make_context(sample_claim)


@pytest.fixture
def registry() -> ActionHandlerRegistry:
    """Registry holding only the built-in handlers."""
    reg = ActionHandlerRegistry()
    register_builtin_handlers(reg)
    return reg


@pytest.fixture
def engine(registry: ActionHandlerRegistry) -> WorkflowEngine:
    """Fresh engine with its own registry."""
    return WorkflowEngine(registry, action_timeout_seconds=None)
