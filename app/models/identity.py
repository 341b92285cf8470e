from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Provider token response as returned by the OAuth library: access_token,
# refresh_token, id_token, expires_at, ... Stored verbatim on the user row.
TokenSet = dict[str, Any]


@dataclass(frozen=True, slots=True)
class IdentityClaims:
    given_name: str
    family_name: str
    email: str
    subject: str
    raw: dict[str, Any] = field(default_factory=dict)
