# =============================================================================
# app/routers/admin.py - Admin Endpoints
# =============================================================================
# User management and CMS sync. Every route requires the caller's profile
# role to be `admin`; anyone else gets 403 `{"error": "Forbidden"}` before
# any lookup happens.
#
# Admin responses use a plain `{"error": message}` body:
# - provider / lookup errors   -> 400
# - AdminOperationError        -> its own status (400, 404, 500)
# - anything unexpected        -> 500, logged with traceback
#
# GET    /admin                                        -> admin page view model
# GET    /api/admin/users                              -> list profiles
# POST   /api/admin/users                              -> create a user
# PUT    /api/admin/users/{user_id}                    -> update a user
# DELETE /api/admin/users/{user_id}                    -> delete a user
# GET    /api/admin/users/{user_id}/get                -> profile + email state
# POST   /api/admin/users/{user_id}/resend-confirmation
# POST   /api/sanity/sync-templates
# POST   /api/sanity/sync-case-studies
# =============================================================================

import logging
from typing import Annotated, Any, Callable

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from supabase import Client

from app.dependencies import AdminUser, ServicesDep, UserClient, get_admin_client
from core.models.admin import AdminUserCreate, AdminUserUpdate
from core.models.notification import Notification
from core.services.admin_service import AdminOperationError, AdminService
from core.services.cms_sync_service import CMSSyncService
from lib.cms_client import CMSError
from lib.supabase_client import EXPECTED_ERRORS, error_message

logger = logging.getLogger(__name__)

router = APIRouter()
pages = APIRouter()

AdminClient = Annotated[Client, Depends(get_admin_client)]


def admin_response(operation: str, action: Callable[[], Any], status_code: int = 200) -> JSONResponse:
    """
    Run an admin action and render its outcome.

    Args:
        operation: Name used in logs
        action: Zero-argument callable doing the work
        status_code: Status for a successful result

    Returns:
        JSONResponse with the result, or `{"error": message}`
    """
    try:
        return JSONResponse(jsonable_encoder(action()), status_code=status_code)
    except AdminOperationError as e:
        logger.warning(f"Admin {operation} rejected: {e.message}")
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except EXPECTED_ERRORS as e:
        logger.warning(f"Admin {operation} failed: {error_message(e)}")
        return JSONResponse({"error": error_message(e)}, status_code=400)
    except Exception as e:
        logger.exception(f"Unexpected error during admin {operation}: {e}")
        return JSONResponse({"error": str(e) or "Internal server error"}, status_code=500)


# =============================================================================
# Page
# =============================================================================

@pages.get("/admin")
def admin_page(user: AdminUser, admin: AdminClient):
    """Admin page view model with every user profile."""
    notifications: list[Notification] = []
    try:
        users = AdminService.list_users(admin)
    except EXPECTED_ERRORS as e:
        logger.warning(f"Failed to list users: {error_message(e)}")
        notifications.append(Notification.error("Failed to load users", error_message(e)))
        users = []

    return {"page": "admin", "users": users, "notifications": notifications}


# =============================================================================
# Users API
# =============================================================================

@router.get("/admin/users")
def list_users(user: AdminUser, admin: AdminClient):
    return admin_response("list_users", lambda: {"users": AdminService.list_users(admin)})


@router.post("/admin/users")
def create_user(body: AdminUserCreate, user: AdminUser, admin: AdminClient):
    """
    Create a confirmed-later user on the PRO tier.

    Without `has_unlimited_free` a 7-day trial payment is recorded.
    """
    logger.info(f"Admin {user.id} creating user {body.email}")
    return admin_response(
        "create_user",
        lambda: {"success": True, "user": AdminService.create_user(admin, body)},
        status_code=201,
    )


@router.put("/admin/users/{user_id}")
def update_user(user_id: str, body: AdminUserUpdate, user: AdminUser, admin: AdminClient):
    def action() -> dict[str, Any]:
        AdminService.update_user(admin, user_id, body)
        return {"success": True}

    return admin_response("update_user", action)


@router.delete("/admin/users/{user_id}")
def delete_user(user_id: str, user: AdminUser, admin: AdminClient):
    """Delete a user. Admins can't delete themselves."""
    return admin_response(
        "delete_user",
        lambda: AdminService.delete_user(admin, str(user.id), user_id),
    )


@router.get("/admin/users/{user_id}/get")
def get_user(user_id: str, user: AdminUser, admin: AdminClient):
    """
    One user's profile merged with their email confirmation state.

    Returns:
        `{...profile, email, email_confirmed, email_confirmed_at}`
    """
    return admin_response(
        "get_user",
        lambda: AdminService.get_user(admin, user_id).model_dump(mode="json"),
    )


@router.post("/admin/users/{user_id}/resend-confirmation")
def resend_confirmation(
    user_id: str,
    user: AdminUser,
    admin: AdminClient,
    services: ServicesDep,
):
    return admin_response(
        "resend_confirmation",
        lambda: AdminService.resend_confirmation(admin, user_id, services.settings.auth_redirect_url),
    )


# =============================================================================
# CMS Sync API
# =============================================================================

def _sync_response(kind: str, sync: Callable[[], Any]) -> JSONResponse:
    try:
        report = sync()
    except CMSError as e:
        logger.error(f"{kind} sync failed: {e.message}")
        return JSONResponse(
            {"error": f"Failed to sync {kind}", "details": e.message},
            status_code=500,
        )

    body = report.model_dump(exclude_none=True)
    if report.total == 0:
        body["message"] = f"No {kind} found in Sanity"
    else:
        body["message"] = f"Synced {report.synced} {kind}"
    return JSONResponse(body)


@router.post("/sanity/sync-templates")
def sync_templates(user: AdminUser, client: UserClient, services: ServicesDep):
    """Pull every template from Sanity into `templates`."""
    return _sync_response(
        "templates",
        lambda: CMSSyncService.sync_templates(services.cms, client, str(user.id)),
    )


@router.post("/sanity/sync-case-studies")
def sync_case_studies(user: AdminUser, client: UserClient, services: ServicesDep):
    """Pull every case study from Sanity into `tasks` as admin case studies."""
    return _sync_response(
        "case studies",
        lambda: CMSSyncService.sync_case_studies(services.cms, client, str(user.id)),
    )
