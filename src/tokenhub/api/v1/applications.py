# Applications router: owner CRUD, secret regeneration, status toggle.
# Created: 2026-10-12

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from tokenhub.api.deps import require_user
from tokenhub.api.v1.schemas.applications import (
    ApplicationCreatedResponse,
    ApplicationInfo,
    ApplicationResponse,
    CreateApplicationRequest,
    SecretResponse,
    ToggleResponse,
    UpdateApplicationRequest,
)
from tokenhub.api.v1.schemas.common import MessageResponse, Paginated
from tokenhub.models import Application, User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Applications"])


def _info(application: Application, with_counts: bool = False) -> ApplicationInfo:
    data = application.to_public_dict()
    if with_counts:
        from tokenhub.tokens import get_token_service

        data["active_tokens_count"] = get_token_service().count_active(
            application_id=application.id
        )
    return ApplicationInfo(**data)


@router.get("/applications", response_model=Paginated[ApplicationInfo])
async def list_applications(page: int = Query(1, ge=1), user: User = Depends(require_user)):
    """The current owner's applications, newest first."""
    from tokenhub.config import get_settings
    from tokenhub.registry import get_application_registry

    result = get_application_registry().list_for_owner(user.id, page, get_settings().per_page)
    return Paginated[ApplicationInfo].from_page(result, lambda a: _info(a, with_counts=True))


@router.post("/applications", response_model=ApplicationCreatedResponse, status_code=201)
async def create_application(body: CreateApplicationRequest, user: User = Depends(require_user)):
    """Register an application. The client secret is returned only once."""
    from tokenhub.registry import get_application_registry

    application, secret = get_application_registry().create(
        user,
        body.name,
        scopes=body.allowed_scopes,
        rate_limit=body.rate_limit,
        callback_urls=body.callback_urls,
        description=body.description,
    )
    return ApplicationCreatedResponse(
        message="Application created successfully.",
        application=_info(application),
        client_secret=secret,
    )


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: str, user: User = Depends(require_user)):
    from tokenhub.registry import get_application_registry

    application = get_application_registry().get_owned(application_id, user)
    return ApplicationResponse(application=_info(application, with_counts=True))


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: str,
    body: UpdateApplicationRequest,
    user: User = Depends(require_user),
):
    """Partial update. Omitted fields keep their value."""
    from tokenhub.registry import get_application_registry

    registry = get_application_registry()
    application = registry.get_owned(application_id, user)
    updated = registry.update(application, **body.model_dump(exclude_unset=True))
    return ApplicationResponse(
        message="Application updated successfully.", application=_info(updated)
    )


@router.delete("/applications/{application_id}", response_model=MessageResponse)
async def delete_application(application_id: str, user: User = Depends(require_user)):
    """Delete an application together with all of its tokens."""
    from tokenhub.registry import get_application_registry

    registry = get_application_registry()
    registry.delete(registry.get_owned(application_id, user))
    return MessageResponse(message="Application deleted successfully.")


@router.post("/applications/{application_id}/regenerate-secret", response_model=SecretResponse)
async def regenerate_secret(application_id: str, user: User = Depends(require_user)):
    """Replace the client secret. The old one stops working immediately."""
    from tokenhub.registry import get_application_registry

    registry = get_application_registry()
    application = registry.get_owned(application_id, user)
    secret = registry.regenerate_secret(application)
    return SecretResponse(
        message="Client secret regenerated successfully.",
        client_id=application.client_id,
        client_secret=secret,
    )


@router.patch("/applications/{application_id}/toggle-status", response_model=ToggleResponse)
async def toggle_status(application_id: str, user: User = Depends(require_user)):
    from tokenhub.registry import get_application_registry

    registry = get_application_registry()
    updated = registry.toggle_active(registry.get_owned(application_id, user))
    status = "activated" if updated.is_active else "deactivated"
    return ToggleResponse(
        message=f"Application {status} successfully.", is_active=updated.is_active
    )
