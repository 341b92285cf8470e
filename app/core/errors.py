"""Exception types shared by the handshake, the gate and the repositories.

Everything under SignupError is caught at the route boundary and rendered
as the shared error page (see app.main). AnonymousRequest is not a failure:
its handler answers with a redirect to the landing page.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Process configuration is incomplete or malformed. Fatal at startup."""


class SignupError(Exception):
    status_code = 500
    title = "Something went wrong"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ExchangeError(SignupError):
    """The authorization callback could not be turned into a token set."""

    status_code = 400
    title = "Could not sign you in with Xero"


class SessionLookupError(SignupError):
    """A session cookie was presented but resolves to no user."""

    status_code = 401
    title = "Your session could not be found"


class DatastoreError(SignupError):
    status_code = 503
    title = "Could not save your details"


class AnonymousRequest(Exception):
    """A gated route was requested without a session cookie."""
