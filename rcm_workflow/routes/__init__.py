"""API route modules for the RCM workflow rules service.

Routers:
- workflow: rule validation, dry-run testing and rule templates
"""

from .workflow import limiter
from .workflow import router as workflow_router

__all__ = ["workflow_router", "limiter"]
