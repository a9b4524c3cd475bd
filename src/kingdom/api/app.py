"""
FastAPI application factory for the kingdom builder API.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kingdom.api.sessions import KingdomSessionManager
from kingdom.api.routers import kingdoms

# Load .env from the project root first, then the working directory
_project_root = Path(__file__).resolve().parents[3]  # src/kingdom/api/app.py -> project root
load_dotenv(_project_root / ".env")
load_dotenv(Path.cwd() / ".env")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Kingdom Builder API",
        description="REST API for the kingdom builder simulation core",
        version="0.1.0",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    db_path = os.environ.get("KINGDOM_DB_PATH", "data/kingdom.db")
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    application.state.session_manager = KingdomSessionManager(db_path=db_path)

    application.include_router(kingdoms.router, prefix="/api/kingdoms", tags=["kingdoms"])

    @application.get("/api/health")
    def health_check():
        return {"status": "ok"}

    return application


app = create_app()
