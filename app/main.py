# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Content Planner API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from app.auth import routes as auth_routes
from app.auth.gate import HOME_PATH, LOGIN_PATH, SessionGateMiddleware
from app.config import settings
from app.dependencies import ServiceContainer
from app.exceptions import (
    PlannerException,
    planner_exception_handler,
    validation_exception_handler,
)
from app.routers import admin, assistant, case_studies, competitors, credits, health, planner, profile
from app.websocket import routes as websocket_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


DESCRIPTION = """
## Content Planner API

Plan, write and track short- and long-form social media content.

### Pages

Page routes return view models and are protected by the session gate:
anonymous visitors are redirected to `/login`, signed-in users on `/login`
to `/planner`.

| Page | Contents |
|------|----------|
| `/planner` | Tasks, tier limits, planner view, AI credits |
| `/profile` | Profile, social links, AI credits |
| `/competitors` | Tracked competitors |
| `/casestudy` | Admin case studies (tier-limited) |
| `/admin` | User management (admins only) |

### API

JSON endpoints under `/api` authenticate with the session cookie or an
`Authorization: Bearer <jwt>` header.

### Live Updates

`ws://host/ws/credits?token=<jwt>` pushes the AI credit counter.
"""


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        services: Pre-built service container (tests inject fakes here).
            When omitted, one is built from settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        - Startup: build the service container (clients, session manager)
        - Shutdown: stop credit pollers and close clients
        """
        logger.info(f"Starting Content Planner API in {settings.ENVIRONMENT} mode")
        logger.info(f"CORS origins: {settings.cors_origins_list}")

        container = services or ServiceContainer.from_settings(settings)
        app.state.services = container

        yield

        logger.info("Shutting down Content Planner API")
        await container.close()

    app = FastAPI(
        title="Content Planner API",
        description=DESCRIPTION,
        version=health.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Auth", "description": "Login, logout and email-link callback"},
            {"name": "Pages", "description": "Page view models behind the session gate"},
            {"name": "Tasks", "description": "Planner tasks, inspiration links and templates"},
            {"name": "Profile", "description": "Profile and social links"},
            {"name": "Competitors", "description": "Tracked competitors"},
            {"name": "Credits", "description": "AI credits and subscription status"},
            {"name": "Assistant", "description": "AI content assistant"},
            {"name": "Admin", "description": "User management and CMS sync"},
            {"name": "WebSocket", "description": "Live credit updates"},
            {"name": "Health", "description": "API health and readiness checks"},
        ],
    )

    # =========================================================================
    # Middleware
    # =========================================================================

    # Session gate: resolves the user and refreshes cookies on page routes
    app.add_middleware(SessionGateMiddleware)

    # CORS middleware - allows cross-origin requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    app.add_exception_handler(PlannerException, planner_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.exception_handler(Exception)
    async def handle_general_exception(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception(f"Unexpected error: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            }
        )

    # =========================================================================
    # Routers
    # =========================================================================

    app.include_router(auth_routes.router, tags=["Auth"])

    # Page view models
    for module in (planner, profile, competitors, case_studies, admin):
        app.include_router(module.pages, tags=["Pages"])

    # JSON API
    app.include_router(planner.router, prefix="/api", tags=["Tasks"])
    app.include_router(profile.router, prefix="/api", tags=["Profile"])
    app.include_router(competitors.router, prefix="/api", tags=["Competitors"])
    app.include_router(credits.router, prefix="/api", tags=["Credits"])
    app.include_router(assistant.router, prefix="/api", tags=["Assistant"])
    app.include_router(admin.router, prefix="/api", tags=["Admin"])

    # Health check endpoints
    app.include_router(health.router, prefix="/api/v1", tags=["Health"])

    # WebSocket endpoints (live credit updates)
    app.include_router(websocket_routes.router, tags=["WebSocket"])

    # =========================================================================
    # Root Endpoint
    # =========================================================================

    @app.get("/", tags=["Root"])
    async def root(request: Request):
        """Send signed-in users to the planner and everyone else to login."""
        user = getattr(request.state, "user", None)
        return RedirectResponse(HOME_PATH if user else LOGIN_PATH, status_code=303)

    return app


app = create_app()
