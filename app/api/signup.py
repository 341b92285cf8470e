"""Browser-facing sign-up routes.

GET  /              landing page with a fresh Xero consent URL
GET  /xero/sign-up  straight into the consent flow (the App Store link)
GET  /callback      code exchange, user upsert, recentSession cookie
GET  /sign-up       pre-populated form (gated)
POST /sign-up       save moreInfo (gated)
GET  /logout        drop the cookie

Failures raise SignupError subclasses; app.main renders them as the error
page. A gated route without a cookie redirects to "/".
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from app.api.dependencies import (
    get_cookie_signer,
    get_identity_client,
    get_user_repo,
    require_session,
)
from app.repos.user_repo import UserRepo
from app.services import signup_service
from app.services.identity_client import IdentityProviderClient
from app.services.session_cookie import COOKIE_NAME, SessionCookieSigner
from app.web import pages

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sign-up"])

Identity = Annotated[IdentityProviderClient, Depends(get_identity_client)]
Repo = Annotated[UserRepo, Depends(get_user_repo)]
SessionId = Annotated[str, Depends(require_session)]


@router.get("/", response_class=HTMLResponse)
async def home(request: Request, identity: Identity) -> HTMLResponse:
    authorize_url = await identity.build_authorization_url(request)
    return HTMLResponse(pages.render_home(authorize_url))


# This is the URL to give the Xero App Store. Users click through from the
# listing, authorise with Xero, come back via /callback and land on a
# pre-populated sign-up form.
@router.get("/xero/sign-up")
async def xero_sign_up(request: Request, identity: Identity) -> RedirectResponse:
    authorize_url = await identity.build_authorization_url(request)
    return RedirectResponse(authorize_url, status_code=status.HTTP_302_FOUND)


@router.get("/callback")
async def callback(
    request: Request,
    identity: Identity,
    repo: Repo,
    signer: Annotated[SessionCookieSigner, Depends(get_cookie_signer)],
) -> RedirectResponse:
    session_id = await signup_service.complete_callback(request, identity, repo)

    response = RedirectResponse("/sign-up", status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=COOKIE_NAME,
        value=signer.sign(session_id),
        max_age=signer.max_age_sec,
        httponly=True,
        samesite="lax",
        secure=request.app.state.settings.is_prod,
        path="/",
    )
    logger.info("Session cookie issued, redirecting to sign-up form")
    return response


@router.get("/sign-up", response_class=HTMLResponse)
async def sign_up_form(session_id: SessionId, repo: Repo) -> HTMLResponse:
    user = await signup_service.load_session_user(repo, session_id)
    return HTMLResponse(pages.render_sign_up(user))


@router.post("/sign-up", response_class=HTMLResponse)
async def sign_up_submit(
    session_id: SessionId,
    repo: Repo,
    more_info: Annotated[str, Form(alias="moreInfo")] = "",
) -> HTMLResponse:
    user = await signup_service.load_session_user(repo, session_id)
    try:
        cleaned = signup_service.clean_more_info(more_info)
    except signup_service.MoreInfoValidationError as e:
        logger.warning("Rejected sign-up form for user id=%s: %s", user.id, e)
        return HTMLResponse(
            pages.render_sign_up(user, error=str(e)),
            status_code=422,
        )

    updated = await signup_service.save_more_info(repo, user, cleaned)
    return HTMLResponse(pages.render_sign_up(updated, message="User updated"))


@router.get("/logout")
async def logout() -> RedirectResponse:
    # Browser-side only: the stored session value stays until the next login.
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(COOKIE_NAME, path="/")
    return response
