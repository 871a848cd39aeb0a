"""
Permit Package Tracker - checklist-driven package workflow with live collaboration
FastAPI application entry point
"""
import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from permit_tracker.core.config import Settings, settings
from permit_tracker.core.database import build_engine, build_session_factory, engine, async_session, init_models
from permit_tracker.core.errors import PermitTrackerError, UnauthorizedError
from permit_tracker.core.logging import configure_logging
from permit_tracker.core.security import PackageAccessPolicy, TokenIdentityProvider
from permit_tracker.api import checklist, counties, packages, websocket
from permit_tracker.services.collaboration import CollaborationHub, SessionRegistry
from permit_tracker.services.lifecycle import WorkflowPolicy
# Import models to ensure they're registered with Base.metadata
from permit_tracker.models import County, ChecklistTemplateItem, PermitPackage, PackageChecklistItem, StatusLogEntry

logger = logging.getLogger("permit_tracker")


async def handle_workflow_error(request: Request, exc: PermitTrackerError):
    """Translate domain errors into the API's {"detail": ...} responses"""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its own store, registry and hub"""
    if app_settings is None:
        app_settings = settings
        app_engine, session_factory = engine, async_session
    else:
        app_engine = build_engine(app_settings.DATABASE_URL)
        session_factory = build_session_factory(app_engine)

    configure_logging(app_settings.LOG_LEVEL)

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        description="Permit packages with county checklists, status workflow and live collaboration",
        version=app_settings.VERSION,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    identity_provider = TokenIdentityProvider(app_settings.API_TOKENS)
    access_policy = PackageAccessPolicy()

    app.state.settings = app_settings
    app.state.engine = app_engine
    app.state.session_factory = session_factory
    app.state.identity_provider = identity_provider
    app.state.access_policy = access_policy
    app.state.hub = CollaborationHub(
        registry=SessionRegistry(),
        session_factory=session_factory,
        identity_provider=identity_provider,
        access_policy=access_policy,
        policy=WorkflowPolicy.from_settings(app_settings),
        single_room=app_settings.SINGLE_ROOM_PER_CONNECTION,
    )

    app.add_exception_handler(PermitTrackerError, handle_workflow_error)

    # Include routers
    app.include_router(counties.router, prefix="/counties", tags=["counties"])
    app.include_router(checklist.router, prefix="/packages", tags=["checklist"])
    app.include_router(packages.router, prefix="/packages", tags=["packages"])
    app.include_router(websocket.router, tags=["collaboration"])

    @app.on_event("startup")
    async def startup_event():
        """Initialize database on startup"""
        await init_models(app_engine)
        logger.info("%s %s started", app_settings.PROJECT_NAME, app_settings.VERSION)

    @app.on_event("shutdown")
    async def shutdown_event():
        await app_engine.dispose()

    @app.get("/")
    async def root():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": app_settings.PROJECT_NAME,
            "version": app_settings.VERSION,
        }

    @app.get("/health")
    async def health():
        """Detailed health check"""
        return {
            "status": "healthy",
            "database": "connected",
            "connected_clients": await app.state.hub.registry.connected_count(),
        }

    return app


app = create_app()
