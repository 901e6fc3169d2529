"""Rule templates for common RCM automation scenarios.

Each ``*.yaml`` file in this package is a pre-built rule (trigger, conditions,
actions) with ``${param}`` placeholders and a parameter list. Templates are
instantiated into rule documents with ``create_rule_from_template``.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

from rcm_workflow.config import DEFAULT_RULE_PRIORITY

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent


def _is_safe_id(template_id: str) -> bool:
    return bool(template_id) and not (
        ".." in template_id or "/" in template_id or "\\" in template_id
    )


def _load(file_path: Path) -> dict[str, Any] | None:
    try:
        with open(file_path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Skipping unreadable rule template {file_path.name}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Skipping rule template {file_path.name}: not a mapping")
        return None
    data["id"] = file_path.stem
    return data


def _summary(template: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": template["id"],
        "name": template.get("name", template["id"]),
        "description": template.get("description", ""),
        "category": template.get("category", "general"),
        "tags": list(template.get("tags") or []),
        "trigger_type": (template.get("trigger") or {}).get("type"),
    }


def _all_templates() -> list[dict[str, Any]]:
    templates = []
    for file_path in sorted(TEMPLATES_DIR.glob("*.yaml")):
        data = _load(file_path)
        if data is not None:
            templates.append(data)
    return templates


def get_template_list() -> list[dict[str, Any]]:
    """Get list of available rule templates.

    Returns:
        Template summaries (id, name, description, category, tags, trigger_type)
        sorted by name.
    """
    return sorted((_summary(t) for t in _all_templates()), key=lambda x: x["name"])


def get_template(template_id: str) -> dict[str, Any] | None:
    """Get a specific template by ID.

    Args:
        template_id: The template file name (without extension)

    Returns:
        Template dict, or None if not found.
    """
    if not _is_safe_id(template_id):
        return None

    file_path = TEMPLATES_DIR / f"{template_id}.yaml"
    if not file_path.exists():
        return None
    return _load(file_path)


def get_template_categories() -> list[str]:
    """Unique template categories, in first-seen order."""
    categories: list[str] = []
    for template in get_template_list():
        if template["category"] not in categories:
            categories.append(template["category"])
    return categories


def search_templates(query: str) -> list[dict[str, Any]]:
    """Case-insensitive search over template name, description and tags."""
    needle = query.casefold()
    return [
        t
        for t in get_template_list()
        if needle in t["name"].casefold()
        or needle in t["description"].casefold()
        or any(needle in tag.casefold() for tag in t["tags"])
    ]


def _placeholder(name: str) -> str:
    return "${" + name + "}"


def _coerce_parameter(param_def: dict[str, Any], value: Any) -> Any:
    # List parameters may be supplied as comma-separated text
    if param_def.get("type") == "list" and isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def _substitute_conditions(conditions: list[Any], placeholder: str, value: Any) -> None:
    for condition in conditions:
        if not isinstance(condition, dict):
            continue
        if condition.get("value") == placeholder:
            condition["value"] = value
        if isinstance(condition.get("conditions"), list):
            _substitute_conditions(condition["conditions"], placeholder, value)


def _substitute_actions(actions: list[Any], placeholder: str, value: Any) -> None:
    for action in actions:
        params = action.get("parameters") if isinstance(action, dict) else None
        if not isinstance(params, dict):
            continue
        for key, current in params.items():
            if current == placeholder:
                params[key] = value


def create_rule_from_template(
    template_id: str,
    *,
    name: str | None = None,
    priority: int | None = None,
    is_active: bool = False,
    organization_id: str | None = None,
    created_by: str | None = None,
    parameter_values: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Instantiate a rule document from a template.

    Args:
        template_id: The template ID to instantiate
        name: Rule name, defaults to the template name
        priority: Rule priority, defaults to DEFAULT_RULE_PRIORITY
        is_active: Whether the new rule starts active
        organization_id: Owning organization
        created_by: Author of the rule
        parameter_values: Values for the template's ``${param}`` placeholders;
            parameters left out fall back to their template default

    Returns:
        Rule document ready for ``validate_rule`` / ``WorkflowRule``.

    Raises:
        ValueError: If template not found.
    """
    template = get_template(template_id)
    if not template:
        raise ValueError(f"Template not found: {template_id}")

    # Deep copy to prevent mutations affecting the loaded template
    template = copy.deepcopy(template)
    conditions = template.get("conditions") or []
    actions = template.get("actions") or []
    supplied = parameter_values or {}

    for param_def in template.get("parameters") or []:
        param_name = param_def.get("name")
        if not param_name:
            continue
        if param_name in supplied:
            value = supplied[param_name]
        elif "default" in param_def:
            value = param_def["default"]
        else:
            continue
        value = _coerce_parameter(param_def, value)
        _substitute_conditions(conditions, _placeholder(param_name), value)
        _substitute_actions(actions, _placeholder(param_name), value)

    return {
        "name": name or template.get("name", template_id),
        "description": template.get("description"),
        "trigger": template.get("trigger") or {},
        "conditions": conditions,
        "actions": actions,
        "priority": DEFAULT_RULE_PRIORITY if priority is None else priority,
        "is_active": is_active,
        "organization_id": organization_id,
        "created_by": created_by,
        "tags": list(template.get("tags") or []),
        "category": template.get("category"),
        "version": 1,
        "metadata": {"template_id": template_id, "template_version": 1},
    }
