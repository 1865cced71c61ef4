"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import ClerkUser


@pytest.fixture
def user_a():
    """Test user A."""
    return ClerkUser(user_id="user_a", claims={"sub": "user_a"})


@pytest.fixture
def user_b():
    """Test user B."""
    return ClerkUser(user_id="user_b", claims={"sub": "user_b"})


@pytest.fixture
def api_client(engine, test_db_url):
    """FastAPI test client with test database.

    Initializes the global database via init_db inside the TestClient's
    own event loop so route handlers can use get_session_factory().
    The engine fixture ensures tables exist before this runs.
    """
    from fastapi import HTTPException
    from fastapi.middleware.cors import CORSMiddleware

    from app.api.routes import api_router
    from app.core.config import get_settings
    from app.core.exceptions import MoralCompassError
    from app.db import close_db, init_db
    from app.main import domain_exception_handler, generic_exception_handler, http_exception_handler
    from app.middleware.correlation import setup_correlation_middleware

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB in TestClient's event loop."""
        # Reset global so init_db creates a fresh engine in THIS loop
        import app.db.base as db_mod

        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(test_db_url)
        yield
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Moral Compass - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_correlation_middleware(app)

    # Exception handlers (needed for debug_id testing)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(MoralCompassError)(domain_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    # raise_server_exceptions=False lets the generic 500 handler answer
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
    app.dependency_overrides.clear()
