# API v1 router aggregation.
# Created: 2026-10-12
#
# mount_v1_routers(app) registers all domain routers at /api/v1/.

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Domain routers, imported lazily inside mount_v1_routers().
_V1_ROUTERS: list[tuple[str, str, str]] = [
    # (module_path, attr_name, tag)
    ("tokenhub.api.v1.auth", "router", "Auth"),
    ("tokenhub.api.v1.oauth", "router", "OAuth"),
    ("tokenhub.api.v1.applications", "router", "Applications"),
    ("tokenhub.api.v1.tokens", "router", "API Tokens"),
    ("tokenhub.api.v1.protected", "router", "Protected"),
]


def mount_v1_routers(app: FastAPI) -> None:
    """Mount all v1 domain routers on *app* at ``/api/v1``."""
    import importlib

    from fastapi import APIRouter

    from tokenhub.api.v1.schemas.common import ErrorResponse

    # Every TokenHubError renders as ErrorResponse; document the common ones.
    error_responses = {
        code: {"model": ErrorResponse} for code in (400, 401, 403, 422)
    }

    for module_path, attr_name, tag in _V1_ROUTERS:
        mod = importlib.import_module(module_path)
        router: APIRouter = getattr(mod, attr_name)
        app.include_router(router, prefix="/api/v1", responses=error_responses)
        logger.debug("Mounted v1 router: %s (%s)", module_path, tag)
