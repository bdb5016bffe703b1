"""
SQLAlchemy ORM models for the campus feed.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from campus_feed.models import (
    ContentItem,
    ContentType,
    Interest,
    Registration,
    UserProfile,
)


class Base(DeclarativeBase):
    pass


class ContentItemORM(Base):
    """SQLAlchemy model for content_items table."""

    __tablename__ = "content_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    publication_date: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_date: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)

    tags: Mapped[List["ContentTagORM"]] = relationship(
        back_populates="content_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("type IN ('activity', 'news')", name="ck_content_type"),
        Index("idx_content_items_type", "type"),
    )


class ContentTagORM(Base):
    """SQLAlchemy model for content_tags table."""

    __tablename__ = "content_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False
    )
    tag: Mapped[str] = mapped_column(Text, nullable=False)

    content_item: Mapped[ContentItemORM] = relationship(back_populates="tags")

    __table_args__ = (
        UniqueConstraint("content_id", "tag", name="uq_content_tag"),
    )


class UserORM(Base):
    """SQLAlchemy model for users table.

    Password hashing is done by the caller; only the hash is stored.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    university: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    study_program: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    year_on_study_program: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class InterestORM(Base):
    """SQLAlchemy model for interests table."""

    __tablename__ = "interests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    tag: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "tag", name="uq_user_interest"),
    )


class RegistrationORM(Base):
    """SQLAlchemy model for registrations table."""

    __tablename__ = "registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False
    )
    registered_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_user_event"),
        Index("idx_registrations_user_id", "user_id"),
    )


# Conversion functions between ORM models and dataclasses


def content_orm_to_dataclass(orm: ContentItemORM) -> ContentItem:
    """Convert a ContentItemORM instance to a ContentItem dataclass."""
    return ContentItem(
        id=orm.id,
        title=orm.title,
        summary=orm.summary,
        body=orm.body or "",
        source=orm.source or "",
        publication_date=orm.publication_date,
        event_date=orm.event_date,
        image_url=orm.image_url,
        type=ContentType(orm.type),
        tags=[t.tag for t in orm.tags],
    )


def content_dataclass_to_orm(item: ContentItem) -> ContentItemORM:
    """Convert a ContentItem dataclass to a ContentItemORM instance.

    Tags are written separately so duplicates can be ignored.
    """
    return ContentItemORM(
        title=item.title,
        summary=item.summary,
        body=item.body,
        source=item.source,
        publication_date=item.publication_date,
        event_date=item.event_date,
        image_url=item.image_url,
        type=item.type.value,
    )


def registration_orm_to_dataclass(orm: RegistrationORM) -> Registration:
    """Convert a RegistrationORM instance to a Registration dataclass."""
    return Registration(
        id=orm.id,
        user_id=orm.user_id,
        event_id=orm.event_id,
        registered_at=orm.registered_at,
    )


def interest_orm_to_dataclass(orm: InterestORM) -> Interest:
    return Interest(id=orm.id, user_id=orm.user_id, tag=orm.tag)


def user_orm_to_profile(
    orm: UserORM,
    interests: List[InterestORM],
    registrations: List[RegistrationORM],
) -> UserProfile:
    """Build a UserProfile from a user row and its interest/registration rows."""
    return UserProfile(
        id=orm.id,
        university=orm.university,
        study_program=orm.study_program,
        year_on_study_program=orm.year_on_study_program,
        interests=[i.tag for i in interests],
        registrations=[registration_orm_to_dataclass(r) for r in registrations],
    )
