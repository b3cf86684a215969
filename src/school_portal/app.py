"""Main FastAPI application module.

This module initializes the FastAPI application and registers all route handlers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from school_portal import __version__
from school_portal.api.routes import auth, registration
from school_portal.config import API_HOST, API_PORT, CORS_ALLOWED_ORIGINS, SCHOOL_NAME
from school_portal.core.database import init_db
from school_portal.core.logging_config import setup_logging

# Setup logging
setup_logging()

# Initialize FastAPI application
app = FastAPI(
    title=f"{SCHOOL_NAME} Portal API",
    description="Identity provisioning and authentication for the school portal.",
    version=__version__,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route handlers
app.include_router(auth.router)
app.include_router(registration.router)


@app.on_event("startup")
def startup_tasks() -> None:
    """Create record store tables if they do not exist."""
    init_db()


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returning API information and documentation links."""
    return {
        "name": f"{SCHOOL_NAME} Portal API",
        "version": __version__,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run("school_portal.app:app", host=API_HOST, port=API_PORT)


# --- Startup code for direct execution ---
if __name__ == "__main__":
    main()
