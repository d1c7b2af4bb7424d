"""
jewelshot.api.admin — Admin package

Exports:
  credits_router  — credit grants
  require_admin   — FastAPI dependency for admin-only endpoints
"""

from jewelshot.api.admin.credits import router as credits_router
from jewelshot.api.admin.deps import require_admin

__all__ = [
    "credits_router",
    "require_admin",
]
