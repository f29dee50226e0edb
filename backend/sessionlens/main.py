"""Main FastAPI application."""
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sessionlens.config import settings
from sessionlens.api import sessions, analytics, dashboard
from sessionlens.database import Base, engine
from sessionlens.utils.exceptions import AppException, app_exception_handler, request_validation_handler

# Sessions are stored as documents in one table; in production, use migrations
if settings.auto_create_tables:
    Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="SessionLens API",
    description="Collector and analytics API for SessionLens session recordings",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

# Include routers
app.include_router(sessions.router)
app.include_router(analytics.router)
app.include_router(dashboard.router)


@app.get("/")
async def root():
    """Liveness endpoint."""
    return {"status": "ok"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
