from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.signup import router as signup_router
from app.core.config import DEV_SESSION_SECRET, Settings, load_settings
from app.core.errors import AnonymousRequest, SignupError
from app.core.logging import setup_logging
from app.db.engine import build_engine, build_session_factory, lifespan_db
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.repos.user_repo import InMemoryUserRepo, UserRepo
from app.services.identity_client import IdentityProviderClient, XeroIdentityClient
from app.services.session_cookie import SessionCookieSigner
from app.web import pages

logger = logging.getLogger(__name__)

# Authlib's pending state/nonce lives here between /xero/sign-up and /callback.
OAUTH_STATE_COOKIE = "xero_oauth_state"
OAUTH_STATE_MAX_AGE_SEC = 10 * 60


async def _signup_error_handler(request: Request, exc: SignupError) -> HTMLResponse:
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    return HTMLResponse(
        pages.render_error(exc.title, exc.detail), status_code=exc.status_code
    )


async def _anonymous_handler(_request: Request, _exc: Exception) -> RedirectResponse:
    return RedirectResponse("/", status_code=status.HTTP_302_FOUND)


async def _unexpected_error_handler(request: Request, exc: Exception) -> HTMLResponse:
    logger.error(
        "Unhandled %s on %s",
        type(exc).__name__,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return HTMLResponse(
        # exception type only: messages can carry SQL or provider payloads
        pages.render_error(
            "Something went wrong",
            f"An unexpected error occurred ({type(exc).__name__}). Please start again.",
        ),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def create_app(
    settings: Settings,
    *,
    identity_client: IdentityProviderClient | None = None,
    user_repo: UserRepo | None = None,
) -> FastAPI:
    """Assemble the app from explicit collaborators.

    Production passes only settings. Tests pass a fake identity client and
    a repository so no network or database is involved.
    """
    engine = None
    session_factory = None
    if user_repo is None and settings.database_url:
        engine = build_engine(settings.database_url)
        session_factory = build_session_factory(engine)
    elif user_repo is None:
        user_repo = InMemoryUserRepo()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        async with lifespan_db(engine, force_sync=settings.force_db_sync):
            yield

    app = FastAPI(
        title="xero-signup",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.identity_client = identity_client or XeroIdentityClient(settings)
    app.state.cookie_signer = SessionCookieSigner(settings.session_secret)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.user_repo = user_repo

    app.add_exception_handler(SignupError, _signup_error_handler)
    app.add_exception_handler(AnonymousRequest, _anonymous_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    # Last added runs first:
    # RequestContext → Metrics → Session (OAuth state) → route handler
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=OAUTH_STATE_COOKIE,
        max_age=OAUTH_STATE_MAX_AGE_SEC,
        same_site="lax",
        https_only=settings.is_prod,
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(signup_router)

    if settings.session_secret == DEV_SESSION_SECRET:
        logger.warning("SESSION_SECRET not set, using the development secret")
    logger.info(
        "xero-signup ready  env=%s port=%d store=%s",
        settings.app_env,
        settings.port,
        "postgres" if engine is not None else "memory",
    )
    return app


# Configuration errors raise here, before uvicorn binds the port.
SETTINGS = load_settings()
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

app = create_app(SETTINGS)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SETTINGS.port, log_config=None)
