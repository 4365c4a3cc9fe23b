# =============================================================================
# app/ - FastAPI Application Package
# =============================================================================
# This package contains the FastAPI web application:
# - main.py: App factory, middleware setup, error handlers
# - config.py: Environment variable loading and settings
# - dependencies.py: Service container and request-scoped dependencies
# - auth/: Session cookies, session gate and login routes
# - routers/: Page and API endpoint definitions organized by feature
# - websocket/: Live AI credit updates
#
# The app layer is thin - it handles HTTP concerns and delegates
# business logic to the core/ package.
# =============================================================================
