"""Named environment registry model."""

from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pops.models.base import Base


class EnvironmentRecord(Base):
    """Registry row for a named environment.

    Only meaningful in the production store; environment stores carry the
    table too but never use it.
    """

    __tablename__ = "environments"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    db_path: Mapped[str] = mapped_column(Text, nullable=False)
    seed_type: Mapped[str] = mapped_column(String, nullable=False, default="none")
    ttl_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[str | None] = mapped_column(Text, nullable=True)
