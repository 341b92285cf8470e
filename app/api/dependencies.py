from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from app.core.errors import AnonymousRequest
from app.repos.pg_user_repo import PgUserRepo
from app.repos.user_repo import UserRepo
from app.services.identity_client import IdentityProviderClient
from app.services.session_cookie import COOKIE_NAME, SessionCookieSigner

logger = logging.getLogger(__name__)


def get_identity_client(request: Request) -> IdentityProviderClient:
    return request.app.state.identity_client


def get_cookie_signer(request: Request) -> SessionCookieSigner:
    return request.app.state.cookie_signer


async def get_user_repo(request: Request) -> AsyncGenerator[UserRepo, None]:
    """Yield the request's user repository.

    PostgreSQL when DATABASE_URL is configured (one AsyncSession per
    request, closed afterwards), otherwise the process-wide in-memory repo.
    """
    session_factory = request.app.state.session_factory
    if session_factory is None:
        yield request.app.state.user_repo
        return

    async with session_factory() as session:
        yield PgUserRepo(session)


def require_session(
    request: Request,
    signer: Annotated[SessionCookieSigner, Depends(get_cookie_signer)],
) -> str:
    """Sign-up gate: resolve the signed recentSession cookie to a session id.

    No cookie at all is the normal anonymous case and redirects to the
    landing page (AnonymousRequest). A cookie that is present but
    unsigned, tampered or expired raises SessionLookupError instead, which
    renders the error page.
    """
    raw = request.cookies.get(COOKIE_NAME)
    if raw is None:
        logger.debug("No session cookie on %s, redirecting", request.url.path)
        raise AnonymousRequest()
    return signer.unsign(raw)
