from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.user import User, UserFields


class UserRepo(Protocol):
    async def get_by_email(self, email: str) -> User | None: ...
    async def get_by_session(self, session: str) -> User | None: ...
    async def upsert(self, fields: UserFields) -> User: ...
    async def update_more_info(self, user_id: UUID, more_info: str) -> User | None: ...


class InMemoryUserRepo:
    """Dict-backed UserRepo used when DATABASE_URL is not configured.

    Methods never await, so each one runs to completion on the event loop
    and the email-keyed upsert cannot interleave with another request.
    """

    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email)

    async def get_by_session(self, session: str) -> User | None:
        if not session:
            return None
        for user in self._by_email.values():
            if user.session == session:
                return user
        return None

    async def upsert(self, fields: UserFields) -> User:
        existing = self._by_email.get(fields.email)
        if existing is None:
            user = User.new(fields)
        else:
            user = replace(
                existing,
                first_name=fields.first_name,
                last_name=fields.last_name,
                xero_userid=fields.xero_userid,
                decoded_id_token=fields.decoded_id_token,
                token_set=fields.token_set,
                active_tenant=fields.active_tenant,
                session=fields.session,
            )
        self._by_email[user.email] = user
        return user

    async def update_more_info(self, user_id: UUID, more_info: str) -> User | None:
        for email, user in self._by_email.items():
            if user.id == user_id:
                updated = replace(user, more_info=more_info)
                self._by_email[email] = updated
                return updated
        return None

    def __len__(self) -> int:
        return len(self._by_email)
