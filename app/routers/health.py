# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Provides health check endpoints for monitoring and load balancers.
# =============================================================================

from fastapi import APIRouter
from pydantic import BaseModel

from app.dependencies import ServicesDep
from lib.cms_client import CMSError
from lib.supabase_client import EXPECTED_ERRORS, SupabaseClientError, error_message
from lib.utils import utcnow

router = APIRouter()

VERSION = "1.0.0"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Basic health check response."""
    status: str
    timestamp: str
    environment: str
    version: str


class ChecksResponse(BaseModel):
    """Individual service checks."""
    database: str
    cms: str
    assistant: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""
    status: str
    checks: ChecksResponse
    timestamp: str


class LivenessResponse(BaseModel):
    """Liveness check response."""
    status: str
    timestamp: str


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServicesDep):
    """
    Health check endpoint.

    Returns basic health status for load balancers and monitoring.
    """
    return HealthResponse(
        status="healthy",
        timestamp=utcnow().isoformat(),
        environment=services.settings.ENVIRONMENT,
        version=VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
def readiness_check(services: ServicesDep):
    """
    Readiness check endpoint.

    Checks database and CMS connectivity. The CMS and the assistant are
    optional; when not configured they report "not configured" and don't
    degrade readiness.
    """
    checks = ChecksResponse(database="unknown", cms="unknown", assistant="unknown")

    # Check database (anonymous client, RLS applies)
    try:
        services.supabase.for_user(None).table("profiles").select("id").limit(1).execute()
        checks.database = "healthy"
    except (SupabaseClientError, *EXPECTED_ERRORS) as e:
        checks.database = f"unhealthy: {error_message(e)[:50]}"

    # Check CMS
    if services.cms.configured:
        try:
            services.cms.fetch("count(*[_type == 'template'])")
            checks.cms = "healthy"
        except CMSError as e:
            checks.cms = f"unhealthy: {e.message[:50]}"
    else:
        checks.cms = "not configured"

    checks.assistant = "configured" if services.assistant.configured else "not configured"

    # Overall status
    all_healthy = checks.database == "healthy" and checks.cms in ("healthy", "not configured")

    return ReadinessResponse(
        status="ready" if all_healthy else "degraded",
        checks=checks,
        timestamp=utcnow().isoformat(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    """
    Liveness check endpoint.

    Returns whether the service process is alive.
    Used by Kubernetes/Docker for restart decisions.
    """
    return LivenessResponse(
        status="alive",
        timestamp=utcnow().isoformat(),
    )
