# =============================================================================
# core/services/admin_service.py - Admin User Management
# =============================================================================
# Privileged operations on users. Every method here takes the
# elevated-privilege (service-role) client, which bypasses RLS; callers must
# have verified the admin role first (see `is_admin`).
#
# Provider errors (PostgREST / GoTrue) propagate to the route, which turns
# them into 400 responses. Business-rule violations raise AdminOperationError.
# =============================================================================

import logging
from datetime import timedelta
from typing import Any

from supabase import AuthError, Client, PostgrestAPIError

from core.models.admin import AdminUserCreate, AdminUserDetail, AdminUserUpdate
from core.models.profile import UserRole, UserTier
from core.models.subscription import PaymentStatus
from lib.supabase_client import error_message, is_not_found
from lib.utils import utcnow

logger = logging.getLogger(__name__)

TRIAL_DAYS = 7


class AdminOperationError(Exception):
    """An admin request that can't be carried out as asked."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AdminService:
    """
    Service for admin-only user management.

    Provides a clean interface between the admin API and Supabase.
    """

    @staticmethod
    def is_admin(client: Client, user_id: str) -> bool:
        """
        Check the caller's role with their own (user-scoped) client.

        A missing or unreadable profile counts as "not admin".
        """
        try:
            response = (
                client.table("profiles")
                .select("role")
                .eq("id", user_id)
                .single()
                .execute()
            )
        except PostgrestAPIError as e:
            if not is_not_found(e):
                logger.warning(f"Role check failed for {user_id}: {error_message(e)}")
            return False
        return (response.data or {}).get("role") == UserRole.ADMIN.value

    @staticmethod
    def get_user(admin: Client, user_id: str) -> AdminUserDetail:
        """
        Get a user's profile merged with their email confirmation state.

        Args:
            admin: Elevated-privilege client
            user_id: Target user

        Returns:
            AdminUserDetail with all profile columns plus email fields

        Raises:
            PostgrestAPIError: If the profile lookup fails
            AuthError: If the auth identity lookup fails
        """
        profile = (
            admin.table("profiles")
            .select("*")
            .eq("id", user_id)
            .single()
            .execute()
        ).data

        auth_user = admin.auth.admin.get_user_by_id(user_id).user
        confirmed_at = getattr(auth_user, "email_confirmed_at", None)

        return AdminUserDetail.model_validate({
            **profile,
            "email": getattr(auth_user, "email", None) or None,
            "email_confirmed": confirmed_at is not None,
            "email_confirmed_at": confirmed_at,
        })

    @staticmethod
    def list_users(admin: Client) -> list[dict[str, Any]]:
        """All profiles, newest first."""
        response = (
            admin.table("profiles")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    @staticmethod
    def create_user(admin: Client, request: AdminUserCreate) -> dict[str, Any]:
        """
        Create an auth user and set up their profile.

        The profile gets the PRO tier. Unless the user has unlimited free
        access, a completed zero-amount trial payment covering the next
        TRIAL_DAYS days is recorded. If the profile write fails, the auth
        user is deleted again.

        Returns:
            Summary dict with id, email, tier and has_unlimited_free
        """
        created = admin.auth.admin.create_user({
            "email": request.email,
            "password": request.password,
            "email_confirm": False,
            "user_metadata": {"created_by_admin": True},
        })
        if created.user is None:
            raise AdminOperationError("Failed to create user")
        user_id = created.user.id
        logger.info(f"Admin created auth user {user_id}")

        if not request.has_unlimited_free:
            start = utcnow()
            end = start + timedelta(days=TRIAL_DAYS)
            admin.table("payments").insert({
                "user_id": user_id,
                "amount": 0,
                "currency": "USD",
                "status": PaymentStatus.COMPLETED.value,
                "payment_method": "trial",
                "subscription_period_start": start.isoformat(),
                "subscription_period_end": end.isoformat(),
                "next_payment_date": end.isoformat(),
                "tier_at_payment": UserTier.PRO.value,
            }).execute()

        profile = {
            "id": user_id,
            "business_name": request.business_name or "",
            "tier": UserTier.PRO.value,
            "has_unlimited_free": request.has_unlimited_free,
        }
        try:
            admin.table("profiles").upsert(profile).execute()
        except PostgrestAPIError as e:
            logger.error(f"Profile setup failed for {user_id}, removing auth user: {error_message(e)}")
            admin.auth.admin.delete_user(user_id)
            raise AdminOperationError("Failed to update profile", status_code=500) from e

        return {
            "id": user_id,
            "email": created.user.email,
            "tier": profile["tier"],
            "has_unlimited_free": profile["has_unlimited_free"],
        }

    @staticmethod
    def update_user(admin: Client, user_id: str, request: AdminUserUpdate) -> None:
        """Update profile columns, then email/password if given."""
        fields = request.profile_fields()
        fields["updated_at"] = utcnow().isoformat()
        admin.table("profiles").update(fields).eq("id", user_id).execute()

        credentials = request.credential_fields()
        if credentials:
            admin.auth.admin.update_user_by_id(user_id, credentials)
        logger.info(f"Admin updated user {user_id}")

    @staticmethod
    def delete_user(admin: Client, current_user_id: str, user_id: str) -> dict[str, Any]:
        """
        Delete a user from auth and profiles.

        If the auth identity is already gone, only the profile row is
        removed. If deleting the auth identity fails, the profile row is
        removed anyway and a warning is returned.

        Raises:
            AdminOperationError: On self-deletion, or when both deletes fail
        """
        if user_id == current_user_id:
            raise AdminOperationError("Cannot delete your own account")

        try:
            existing = admin.auth.admin.get_user_by_id(user_id).user
        except AuthError as e:
            logger.warning(f"Could not look up auth user {user_id}: {error_message(e)}")
            existing = None

        if existing is None:
            admin.table("profiles").delete().eq("id", user_id).execute()
            return {"success": True, "message": "User was already deleted from auth system"}

        try:
            admin.auth.admin.delete_user(user_id)
        except AuthError as e:
            logger.error(f"Auth delete failed for {user_id}: {error_message(e)}")
            try:
                admin.table("profiles").delete().eq("id", user_id).execute()
            except PostgrestAPIError as profile_error:
                raise AdminOperationError(f"Failed to delete user: {error_message(e)}") from profile_error
            return {
                "success": True,
                "warning": "User deleted from profiles but may still exist in auth.users",
            }

        logger.info(f"Admin deleted user {user_id}")
        return {"success": True}

    @staticmethod
    def resend_confirmation(admin: Client, user_id: str, redirect_to: str) -> dict[str, Any]:
        """
        Generate a fresh sign-in link for a user who hasn't confirmed their email.

        Tries a magic link first and falls back to a recovery link.

        Raises:
            AdminOperationError: Unknown user (404), no email, already
                confirmed, or both link types failing
        """
        try:
            auth_user = admin.auth.admin.get_user_by_id(user_id).user
        except AuthError:
            auth_user = None
        if auth_user is None:
            raise AdminOperationError("User not found", status_code=404)
        if not auth_user.email:
            raise AdminOperationError("User has no email address")
        if auth_user.email_confirmed_at:
            raise AdminOperationError("Email is already confirmed")

        link = None
        last_error: AuthError | None = None
        for link_type in ("magiclink", "recovery"):
            try:
                link = admin.auth.admin.generate_link({
                    "type": link_type,
                    "email": auth_user.email,
                    "options": {"redirect_to": redirect_to},
                })
                break
            except AuthError as e:
                logger.warning(f"{link_type} link failed for {user_id}: {error_message(e)}")
                last_error = e

        if link is None:
            message = error_message(last_error) if last_error else "Failed to generate confirmation link"
            raise AdminOperationError(message)

        return {
            "success": True,
            "message": "Confirmation link generated. The email may need to be sent manually "
                       "depending on the auth provider's SMTP configuration.",
            "confirmation_link": link.properties.action_link,
        }
