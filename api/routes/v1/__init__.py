"""v1 API routes with account scoping.

All routes in this module follow the pattern:
/v1/accounts/{account_id}/...
"""

from api.routes.v1.articles import router as articles_router
from api.routes.v1.logs import router as logs_router
from api.routes.v1.runs import router as runs_router
from api.routes.v1.templates import router as templates_router

__all__ = [
    "articles_router",
    "logs_router",
    "runs_router",
    "templates_router",
]
