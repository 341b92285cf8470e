"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DatastoreError
from app.db.tables import UserRow
from app.models.user import User, UserFields

# Columns a repeat callback overwrites. more_info belongs to the form.
_IDENTITY_COLUMNS = (
    "first_name",
    "last_name",
    "xero_userid",
    "decoded_id_token",
    "token_set",
    "active_tenant",
    "session",
)


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy.

    Writes commit immediately: the callback must know the row is durable
    before it hands out a cookie.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_email(self, email: str) -> User | None:
        return await self._one(select(UserRow).where(UserRow.email == email))

    async def get_by_session(self, session: str) -> User | None:
        if not session:
            return None
        return await self._one(select(UserRow).where(UserRow.session == session))

    async def upsert(self, fields: UserFields) -> User:
        values = {
            "email": fields.email,
            "first_name": fields.first_name,
            "last_name": fields.last_name,
            "xero_userid": fields.xero_userid,
            "decoded_id_token": fields.decoded_id_token,
            "token_set": fields.token_set,
            "active_tenant": fields.active_tenant,
            "session": fields.session,
        }
        stmt = insert(UserRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserRow.email],
            set_={col: stmt.excluded[col] for col in _IDENTITY_COLUMNS},
        ).returning(UserRow)
        # the callback already loaded this row by email; refresh it from RETURNING
        stmt = stmt.execution_options(populate_existing=True)
        try:
            row = (await self._session.execute(stmt)).scalar_one()
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise DatastoreError(f"could not save user: {e.__class__.__name__}") from e
        return _row_to_user(row)

    async def update_more_info(self, user_id: UUID, more_info: str) -> User | None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(more_info=more_info)
            .returning(UserRow)
            .execution_options(populate_existing=True)
        )
        try:
            row = (await self._session.execute(stmt)).scalar_one_or_none()
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise DatastoreError(
                f"could not update user: {e.__class__.__name__}"
            ) from e
        return _row_to_user(row) if row is not None else None

    async def _one(self, stmt) -> User | None:
        try:
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatastoreError(f"user lookup failed: {e.__class__.__name__}") from e
        if row is None:
            return None
        return _row_to_user(row)


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        xero_userid=row.xero_userid or "",
        decoded_id_token=dict(row.decoded_id_token or {}),
        token_set=dict(row.token_set or {}),
        active_tenant=row.active_tenant,
        session=row.session,
        more_info=row.more_info,
    )
