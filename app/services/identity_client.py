"""Xero identity provider client.

Wraps Authlib's Starlette OAuth client. Authlib owns everything
cryptographic: it generates state and nonce, keeps them in the short-lived
signed OAuth-state cookie (Starlette SessionMiddleware), checks the state on
the way back, exchanges the code and validates the ID token signature,
issuer, audience and nonce against Xero's JWKS. This module only turns the
library's failures into ExchangeError and reshapes the results.

Scopes are identity-only (openid profile email). The app captures who the
user is for lead creation; it never asks for accounting API access.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import httpx
import jwt
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.starlette_client import OAuth, StarletteIntegration
from joserfc.errors import JoseError
from starlette.requests import Request

from app.core.config import Settings
from app.core.errors import ExchangeError
from app.models.identity import IdentityClaims, TokenSet

logger = logging.getLogger(__name__)

XERO_AUTHORIZE_URL = "https://login.xero.com/identity/connect/authorize"
XERO_TOKEN_URL = "https://identity.xero.com/connect/token"
XERO_ISSUER = "https://identity.xero.com"
XERO_JWKS_URI = "https://identity.xero.com/.well-known/openid-configuration/jwks"
XERO_CONNECTIONS_URL = "https://api.xero.com/connections"

SCOPES = ("openid", "profile", "email")

# Consent URLs that stay redeemable at once (several tabs, reloads).
MAX_PENDING_STATES = 5
PENDING_STATE_TTL_SEC = 10 * 60

# Authlib validates ID tokens with joserfc, whose errors are not
# AuthlibBaseError subclasses.
_PROVIDER_ERRORS = (AuthlibBaseError, JoseError)


class IdentityProviderClient(Protocol):
    async def build_authorization_url(self, request: Request) -> str: ...
    async def exchange_callback(self, request: Request) -> TokenSet: ...
    async def fetch_active_tenant(self, token_set: TokenSet) -> dict[str, Any] | None: ...


class _PendingStatesIntegration(StarletteIntegration):
    """Keep the newest MAX_PENDING_STATES authorizations in the state cookie.

    Authlib's stock integration keeps only the latest state, so rendering
    a second consent URL voids the first. Entries are removed when redeemed
    or once they expire.
    """

    expires_in = PENDING_STATE_TTL_SEC

    async def set_state_data(
        self, session: dict[str, Any] | None, state: str, data: Any
    ) -> None:
        if self.cache or session is None:
            await super().set_state_data(session, state, data)
            return

        prefix = f"_state_{self.name}_"
        self._clear_session_state(session)
        pending = sorted(
            (key for key in session if key.startswith(prefix)),
            key=lambda key: session[key].get("exp", 0),
        )
        for key in pending[: max(0, len(pending) - MAX_PENDING_STATES + 1)]:
            session.pop(key)
        session[f"{prefix}{state}"] = {
            "data": data,
            "exp": time.time() + self.expires_in,
        }


class _XeroOAuth(OAuth):
    framework_integration_cls = _PendingStatesIntegration


class XeroIdentityClient:
    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._redirect_uri = settings.redirect_uri
        client_kwargs: dict[str, Any] = {
            "scope": " ".join(SCOPES),
            "timeout": settings.http_timeout_sec,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        oauth = _XeroOAuth()
        self._app = oauth.register(
            name="xero",
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            authorize_url=XERO_AUTHORIZE_URL,
            access_token_url=XERO_TOKEN_URL,
            client_kwargs=client_kwargs,
            # Extra register() kwargs become server metadata, which is all
            # parse_id_token needs. Skips the discovery round-trip.
            issuer=XERO_ISSUER,
            jwks_uri=XERO_JWKS_URI,
        )

    async def build_authorization_url(self, request: Request) -> str:
        """Return the consent URL and park its state/nonce in the browser.

        Every call mints a fresh state and nonce; otherwise the URL is
        the same each time. Earlier URLs stay valid (see
        _PendingStatesIntegration).
        """
        rv = await self._app.create_authorization_url(self._redirect_uri)
        # only what the callback needs: the cookie holds several of these
        await self._app.save_authorize_data(
            request,
            state=rv["state"],
            nonce=rv["nonce"],
            redirect_uri=self._redirect_uri,
        )
        return rv["url"]

    async def exchange_callback(self, request: Request) -> TokenSet:
        """Exchange the callback's code for a validated token set.

        Raises ExchangeError for a provider error parameter, a state or
        nonce mismatch, a rejected or expired code, an ID token that fails
        validation, a network error or a timeout. None of these are retried.
        """
        try:
            token = await self._app.authorize_access_token(request)
        except _PROVIDER_ERRORS as e:
            logger.warning(
                "Authorization code exchange rejected: %s",
                getattr(e, "error", type(e).__name__),
            )
            raise ExchangeError(f"Xero rejected the sign-in: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("Authorization code exchange failed: %s", type(e).__name__)
            raise ExchangeError(
                f"Could not reach Xero to complete the sign-in ({type(e).__name__})"
            ) from e

        token_set: TokenSet = {k: v for k, v in dict(token).items() if k != "userinfo"}
        if not token_set.get("id_token"):
            raise ExchangeError("Xero did not return an identity token")
        if not decode_identity_claims(token_set).email:
            raise ExchangeError("Xero identity token carries no email address")
        return token_set

    async def fetch_active_tenant(self, token_set: TokenSet) -> dict[str, Any] | None:
        """First entry of the user's Xero connections, or None when there are none.

        With identity-only scopes the list is usually empty.
        """
        try:
            resp = await self._app.get(XERO_CONNECTIONS_URL, token=token_set)
            resp.raise_for_status()
            connections = resp.json()
        except (AuthlibBaseError, httpx.HTTPError, ValueError) as e:
            logger.warning("Fetching Xero connections failed: %s", type(e).__name__)
            raise ExchangeError("Could not load your Xero organisations") from e

        if not isinstance(connections, list):
            logger.warning("Xero connections response is not a list")
            raise ExchangeError("Could not load your Xero organisations")
        if not connections:
            return None
        return connections[0]


def decode_identity_claims(token_set: TokenSet) -> IdentityClaims:
    """Read the identity claims out of an already validated token set.

    The signature is not re-checked here: exchange_callback only returns
    token sets whose ID token passed validation.
    """
    claims = jwt.decode(token_set["id_token"], options={"verify_signature": False})
    return IdentityClaims(
        given_name=claims.get("given_name") or "",
        family_name=claims.get("family_name") or "",
        email=claims.get("email") or "",
        subject=claims.get("xero_userid") or claims.get("sub") or "",
        raw=claims,
    )
