"""SQLAlchemy table definitions.

Repos convert between these rows and the frozen dataclasses in app/models/.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base

_Json = JSON().with_variant(JSONB(), "postgresql")


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # unique: concurrent callbacks for one email must collide, not duplicate
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    xero_userid: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    decoded_id_token: Mapped[dict[str, Any]] = mapped_column(
        _Json, nullable=False, default=dict
    )
    token_set: Mapped[dict[str, Any]] = mapped_column(
        _Json, nullable=False, default=dict
    )
    active_tenant: Mapped[dict[str, Any] | None] = mapped_column(_Json, nullable=True)
    session: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    more_info: Mapped[str | None] = mapped_column(Text, nullable=True)
