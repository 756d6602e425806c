from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from groupware_authz.db.base import Base


class ACLEntry(Base):
    """
    One ACE: ``principal_id`` (account or team) gets ``permissions`` on the
    object with primary key ``object_id``. Keys are unique across tables, so
    there is no entity column.
    """

    __tablename__ = "acl_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    object_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    principal_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    permissions: Mapped[str] = mapped_column(String(64), nullable=False, default="")
