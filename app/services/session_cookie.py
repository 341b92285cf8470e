"""Signed `recentSession` cookie.

The cookie value is the user's opaque session identifier, signed with the
process-wide SESSION_SECRET and timestamped by itsdangerous. The signature
timestamp lets us reject a cookie older than its max-age even if a browser
kept it around.

The cookie is only a capability: it is worth something while a user row
still carries the same session value. A later login overwrites that value
and silently retires the old cookie.
"""

from __future__ import annotations

import uuid

from itsdangerous import BadSignature, SignatureExpired, TimestampSigner

from app.core.errors import SessionLookupError

COOKIE_NAME = "recentSession"
COOKIE_MAX_AGE_SEC = 60 * 60  # 1 hour

_SALT = "recent-session"


def new_session_id() -> str:
    return str(uuid.uuid4())


class SessionCookieSigner:
    def __init__(self, secret: str, *, max_age_sec: int = COOKIE_MAX_AGE_SEC) -> None:
        self._signer = TimestampSigner(secret, salt=_SALT)
        self.max_age_sec = max_age_sec

    def sign(self, session_id: str) -> str:
        return self._signer.sign(session_id).decode("utf-8")

    def unsign(self, cookie_value: str) -> str:
        """Return the session id, or raise SessionLookupError.

        An expired or tampered cookie is not the same as no cookie: the
        gate must show the error page instead of treating the visitor as
        anonymous.
        """
        try:
            raw = self._signer.unsign(cookie_value, max_age=self.max_age_sec)
        except SignatureExpired:
            raise SessionLookupError("session cookie has expired") from None
        except BadSignature:
            raise SessionLookupError("session cookie signature is invalid") from None
        return raw.decode("utf-8")
