from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class UserFields:
    """Everything a successful callback writes. more_info is owned by the form."""

    email: str
    first_name: str
    last_name: str
    xero_userid: str
    decoded_id_token: dict[str, Any]
    token_set: dict[str, Any]
    active_tenant: dict[str, Any] | None
    session: str


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    first_name: str
    last_name: str
    xero_userid: str
    decoded_id_token: dict[str, Any]
    token_set: dict[str, Any]
    active_tenant: dict[str, Any] | None
    session: str
    more_info: str | None = None

    @staticmethod
    def new(fields: UserFields) -> User:
        return User(
            id=uuid4(),
            email=fields.email,
            first_name=fields.first_name,
            last_name=fields.last_name,
            xero_userid=fields.xero_userid,
            decoded_id_token=fields.decoded_id_token,
            token_set=fields.token_set,
            active_tenant=fields.active_tenant,
            session=fields.session,
        )
