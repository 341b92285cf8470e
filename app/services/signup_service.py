"""Handshake sequencing, independent of HTTP.

  callback:  exchange code → fetch tenant → decode claims → find by email
             → new session id → upsert → (route signs cookie)
  form:      session id → user → more_info

Each step awaits the previous one. Any failure raises out of here before
a session id is returned, so the route never issues a cookie for a write
that did not happen.
"""

from __future__ import annotations

import logging

from starlette.requests import Request

from app.core.errors import DatastoreError, ExchangeError, SessionLookupError
from app.core.metrics import CALLBACK_OUTCOMES, FORM_SUBMISSIONS
from app.models.user import User, UserFields
from app.repos.user_repo import UserRepo
from app.services.identity_client import IdentityProviderClient, decode_identity_claims
from app.services.session_cookie import new_session_id

logger = logging.getLogger(__name__)

MORE_INFO_MAX_LEN = 2000


class MoreInfoValidationError(ValueError):
    pass


async def complete_callback(
    request: Request, identity: IdentityProviderClient, repo: UserRepo
) -> str:
    """Run the callback half of the handshake. Returns the new session id."""
    try:
        token_set = await identity.exchange_callback(request)
        active_tenant = await identity.fetch_active_tenant(token_set)
    except ExchangeError:
        CALLBACK_OUTCOMES.labels(outcome="exchange_error").inc()
        raise

    claims = decode_identity_claims(token_set)
    session_id = new_session_id()
    fields = UserFields(
        email=claims.email,
        first_name=claims.given_name,
        last_name=claims.family_name,
        xero_userid=claims.subject,
        decoded_id_token=claims.raw,
        token_set=token_set,
        active_tenant=active_tenant,
        session=session_id,
    )

    try:
        existing = await repo.get_by_email(claims.email)
        user = await repo.upsert(fields)
    except DatastoreError:
        CALLBACK_OUTCOMES.labels(outcome="datastore_error").inc()
        logger.error("Upsert failed for email=%s; no cookie issued", claims.email)
        raise

    if existing is None:
        CALLBACK_OUTCOMES.labels(outcome="created").inc()
        logger.info("CREATED user email=%s id=%s", user.email, user.id)
    else:
        CALLBACK_OUTCOMES.labels(outcome="updated").inc()
        logger.info("UPDATED user email=%s id=%s", user.email, user.id)
    return session_id


async def load_session_user(repo: UserRepo, session_id: str) -> User:
    user = await repo.get_by_session(session_id)
    if user is None:
        # stale (superseded by a newer login) or forged
        logger.warning("Session cookie matched no user")
        raise SessionLookupError("Could not find user")
    return user


def clean_more_info(raw: str) -> str:
    value = raw.strip()
    if len(value) > MORE_INFO_MAX_LEN:
        raise MoreInfoValidationError(
            f"Please keep this under {MORE_INFO_MAX_LEN} characters."
        )
    return value


async def save_more_info(repo: UserRepo, user: User, more_info: str) -> User:
    updated = await repo.update_more_info(user.id, more_info)
    if updated is None:
        raise SessionLookupError("Could not find user")
    FORM_SUBMISSIONS.inc()
    logger.info("Saved sign-up details for user id=%s", updated.id)
    return updated
