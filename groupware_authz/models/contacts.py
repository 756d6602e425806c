from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupware_authz.db.base import Base
from groupware_authz.models.acl import ACLEntry


class Contact(Base):
    """Persons, companies and teams share one table; accounts are persons with ``is_account``."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # person | company | team
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_account: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # account owning the record
    owner_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # primary contact (a principal) of the record
    contact_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_readonly: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    acl_entries: Mapped[list[ACLEntry]] = relationship(
        ACLEntry,
        primaryjoin="foreign(ACLEntry.object_id) == Contact.id",
        viewonly=True,
    )


class TeamMembership(Base):
    __tablename__ = "team_memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("contacts.id"), nullable=False, index=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("contacts.id"), nullable=False, index=True)


class Address(Base):
    __tablename__ = "addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contact_id: Mapped[int] = mapped_column(ForeignKey("contacts.id"), nullable=False, index=True)
    # legacy code ("private", "mailing", ...) or vCard list ("V:WORK,PREF")
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)


class PhoneNumber(Base):
    __tablename__ = "phone_numbers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contact_id: Mapped[int] = mapped_column(ForeignKey("contacts.id"), nullable=False, index=True)
    # legacy code ("01_tel", "03_tel_funk", "05_tel_private") or vCard list ("V:CELL,HOME")
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    number: Mapped[str | None] = mapped_column(String(50), nullable=True)


class EMailAddress(Base):
    __tablename__ = "email_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contact_id: Mapped[int] = mapped_column(ForeignKey("contacts.id"), nullable=False, index=True)
    label: Mapped[str | None] = mapped_column(String(100), nullable=True)  # "WORK;PREF"
    address: Mapped[str] = mapped_column(String(200), nullable=False)


class ContactComment(Base):
    __tablename__ = "contact_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contact_id: Mapped[int] = mapped_column(ForeignKey("contacts.id"), nullable=False, index=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
