import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.api.bootstrap import bootstrap
from src.api.db import Database
from src.api.errors import StoreError
from src.api.schemas import APIError, DatabaseFailure, DatabaseStatus, HealthStatus, User
from src.api.users import UserStore

logger = logging.getLogger("tierdemo.api")

openapi_tags = [
    {"name": "Health", "description": "Liveness and database connectivity checks."},
    {"name": "Users", "description": "Read-only access to the seeded users."},
]

router = APIRouter()


def _allowed_origins() -> List[str]:
    # Comma separated; defaults to allowing any origin for local demos.
    env_val = os.getenv("CORS_ALLOW_ORIGINS")
    if not env_val:
        return ["*"]
    return [o.strip() for o in env_val.split(",") if o.strip()]


def get_store(request: Request) -> UserStore:
    return request.app.state.store


def _log_store_error(action: str, exc: StoreError) -> None:
    logger.error("%s failed (%s): %s", action, type(exc).__name__, exc.detail or exc.public_message)


@router.get("/health", response_model=HealthStatus, tags=["Health"], summary="Liveness check")
def health_check() -> HealthStatus:
    """Always healthy while the process serves requests; never touches the database."""
    return HealthStatus(status="healthy")


@router.get(
    "/api/test-db",
    response_model=DatabaseStatus,
    responses={500: {"model": DatabaseFailure}},
    tags=["Health"],
    summary="Database connectivity check",
)
def test_db(store: UserStore = Depends(get_store)):
    """Run ``SELECT NOW()`` and report the database time."""
    try:
        now = store.probe()
    except StoreError as exc:
        _log_store_error("Database probe", exc)
        failure = DatabaseFailure(message="Database connection failed", error=exc.public_message)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=failure.model_dump())
    return DatabaseStatus(message="Database connection successful!", timestamp=now)


@router.get(
    "/api/users",
    response_model=List[User],
    responses={500: {"model": APIError}},
    tags=["Users"],
    summary="List users",
)
def list_users(store: UserStore = Depends(get_store)):
    """Return every user ordered by id; an empty table yields ``[]``."""
    try:
        return store.list_rows()
    except StoreError as exc:
        _log_store_error("Listing users", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=APIError(error=exc.public_message).model_dump(),
        )


# PUBLIC_INTERFACE
def create_app(store: Optional[UserStore] = None, run_bootstrap: bool = True) -> FastAPI:
    """Build the API around ``store``.

    When no store is given, one is created over a :class:`Database` configured
    from the environment. With ``run_bootstrap`` the schema and seed data are
    prepared during startup and any failure aborts the server.
    """
    user_store = store or UserStore(Database())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if run_bootstrap:
            await run_in_threadpool(bootstrap, user_store)
        try:
            yield
        finally:
            user_store.database.close()

    app = FastAPI(
        title="Multi-Tier Demo API",
        description=(
            "REST backend for the multi-tier demo: a liveness probe, a database "
            "connectivity check and a read-only users listing."
        ),
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.store = user_store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
