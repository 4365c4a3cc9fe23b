# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# Long-lived clients live in a ServiceContainer that the app lifespan builds
# once and stores on `app.state.services`. Request-scoped objects (the
# caller's database client, their profile) are built from it per request.
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, Request
from supabase import Client

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser
from app.auth.session import SessionManager
from app.config import Settings
from app.exceptions import (
    ConfigurationError,
    ForbiddenError,
    ResourceOperationError,
    SubscriptionRequiredError,
)
from app.websocket.manager import CreditsConnectionManager
from core.models.profile import Profile
from core.models.subscription import SubscriptionStatus
from core.resources.profile import ProfileResource
from core.services.admin_service import AdminService
from core.services.assistant_service import ContentAssistant
from core.services.subscription_service import SubscriptionService
from lib.cms_client import SanityClient
from lib.supabase_client import ServiceKeyMissingError, SupabaseClients

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Process-wide clients, created in the lifespan and closed on shutdown.

    Example:
        services = ServiceContainer.from_settings(settings)
        app.state.services = services
        ...
        await services.close()
    """
    settings: Settings
    supabase: SupabaseClients
    sessions: SessionManager
    cms: SanityClient
    assistant: ContentAssistant
    connections: CreditsConnectionManager = field(default_factory=CreditsConnectionManager)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContainer":
        return cls(
            settings=settings,
            supabase=SupabaseClients(settings),
            sessions=SessionManager(settings),
            cms=SanityClient.from_settings(settings),
            assistant=ContentAssistant.from_settings(settings),
        )

    async def close(self) -> None:
        await self.connections.close()
        await self.sessions.close()
        self.cms.close()
        self.supabase.close()
        logger.info("Service container closed")


def get_services(request: Request) -> ServiceContainer:
    """Get the ServiceContainer built in the app lifespan."""
    return request.app.state.services


ServicesDep = Annotated[ServiceContainer, Depends(get_services)]
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]


def get_user_client(services: ServicesDep, user: CurrentUser) -> Client:
    """Supabase client acting as the caller (RLS applies)."""
    return services.supabase.for_user(user.access_token)


UserClient = Annotated[Client, Depends(get_user_client)]


def get_admin_client(services: ServicesDep) -> Client:
    """
    Elevated-privilege client.

    Raises:
        ConfigurationError: If SUPABASE_SERVICE_KEY is not configured
    """
    try:
        return services.supabase.admin
    except ServiceKeyMissingError as e:
        raise ConfigurationError(e.message, setting="SUPABASE_SERVICE_KEY") from e


def get_current_profile(client: UserClient, user: CurrentUser) -> Profile:
    """
    Load the caller's profile, creating it on first access.

    Raises:
        ResourceOperationError: If the profile can't be read
    """
    resource = ProfileResource(client, user.id)
    state = resource.load()
    if state.error or state.data is None:
        raise ResourceOperationError("load_profile", state.error or "Profile not found")
    return state.data


CurrentProfile = Annotated[Profile, Depends(get_current_profile)]


def require_admin(client: UserClient, user: CurrentUser) -> AuthUser:
    """
    Only let admins through.

    Raises:
        ForbiddenError: If the caller's role is not admin
    """
    if not AdminService.is_admin(client, str(user.id)):
        logger.warning(f"Non-admin user {user.id} denied admin access")
        raise ForbiddenError()
    return user


AdminUser = Annotated[AuthUser, Depends(require_admin)]


def require_subscription(client: UserClient, user: CurrentUser) -> SubscriptionStatus:
    """
    Only let users with an active subscription through.

    Raises:
        SubscriptionRequiredError: If the subscription is not active
    """
    status = SubscriptionService.check_subscription_status(client, str(user.id))
    if not status.is_active:
        raise SubscriptionRequiredError(str(user.id))
    return status


ActiveSubscription = Annotated[SubscriptionStatus, Depends(require_subscription)]
