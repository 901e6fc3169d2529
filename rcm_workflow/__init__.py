"""RCM Workflow Rules Engine Package.

This package evaluates revenue cycle workflow rules (trigger, conditions,
actions) against claims, denials, payments and accounts, including:

- Rule condition evaluation with nested AND/OR groups
- Ordered, fault-isolated action dispatch through a handler registry
- Rule validation and batch import
- Pre-built RCM rule templates
- A FastAPI service for rule validation, dry runs and templates

Usage:
    # Development:
    uvicorn rcm_workflow.app:app --reload --port 8080

Modules:
    app: FastAPI application entry point
    rules: Workflow rules engine
    templates: YAML rule templates
    routes: HTTP routers
    config: Environment-driven settings
"""

__version__ = "0.1.0"
