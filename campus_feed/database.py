"""
Persistence gateway for the campus feed.

Uses SQLAlchemy ORM for database access. The public API uses dataclass models
from models.py, with conversion to/from ORM models handled internally. Each
Database owns its engine and session factory; components receive the
instance they should use.
"""

import time
from contextlib import contextmanager
from typing import Generator, List, Optional

from sqlalchemy import Engine, create_engine, delete, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from campus_feed.constants import DB_NAME, PLACEHOLDER_TITLES
from campus_feed.errors import InvalidContentType
from campus_feed.models import ContentItem, ContentType, Interest, Registration, UserProfile
from campus_feed.orm_models import (
    Base,
    ContentItemORM,
    ContentTagORM,
    InterestORM,
    RegistrationORM,
    UserORM,
    content_dataclass_to_orm,
    content_orm_to_dataclass,
    interest_orm_to_dataclass,
    registration_orm_to_dataclass,
    user_orm_to_profile,
)


def _validate_content_type(value) -> ContentType:
    if isinstance(value, ContentType):
        return value
    try:
        return ContentType(value)
    except ValueError:
        raise InvalidContentType(
            f'Invalid type: {value}. Must be either "activity" or "news".'
        ) from None


class Database:
    """Atomic reads and writes of content items, tags, users, interests and registrations."""

    def __init__(self, engine: Optional[Engine] = None):
        if engine is None:
            engine = create_engine(f"sqlite:///{DB_NAME}")
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine)

    @classmethod
    def from_url(cls, database_url: str) -> "Database":
        return cls(create_engine(database_url))

    def init_db(self):
        """Initialize the database schema."""
        Base.metadata.create_all(self.engine)

    def dispose(self):
        self.engine.dispose()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a session context manager for database operations.

        Usage:
            with db.session() as session:
                session.add(obj)
                # commit happens automatically on successful exit
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Content items

    def add_content_item(self, item: ContentItem) -> int:
        """Insert a new content item and its tags.

        Returns the item id.

        Raises:
            InvalidContentType: if the item's type is not news or activity.
        """
        item.type = _validate_content_type(item.type)
        orm = content_dataclass_to_orm(item)

        with self.session() as session:
            session.add(orm)
            session.flush()
            for tag in dict.fromkeys(item.tags):
                session.add(ContentTagORM(content_id=orm.id, tag=tag))
            return orm.id

    def get_content_item(self, content_id: int) -> Optional[ContentItem]:
        """Get a content item by its database ID."""
        with self.session() as session:
            orm = session.get(ContentItemORM, content_id)
            if orm is None:
                return None
            return content_orm_to_dataclass(orm)

    def get_content_items(self, content_ids: List[int]) -> List[ContentItem]:
        """Get the items with the given ids, in id order. Unknown ids are skipped."""
        if not content_ids:
            return []
        with self.session() as session:
            stmt = (
                select(ContentItemORM)
                .where(ContentItemORM.id.in_(content_ids))
                .order_by(ContentItemORM.id.asc())
            )
            orms = session.execute(stmt).scalars().all()
            return [content_orm_to_dataclass(orm) for orm in orms]

    def list_content(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        content_type: Optional[ContentType] = None,
    ) -> List[ContentItem]:
        """List items newest first, optionally filtered by type.

        With page and limit set, returns that page only; otherwise every item.
        """
        stmt = select(ContentItemORM).order_by(ContentItemORM.id.desc())
        if content_type is not None:
            stmt = stmt.where(ContentItemORM.type == content_type.value)
        if page is not None and limit is not None:
            stmt = stmt.offset((page - 1) * limit).limit(limit)

        with self.session() as session:
            orms = session.execute(stmt).scalars().all()
            return [content_orm_to_dataclass(orm) for orm in orms]

    def count_content(self, content_type: Optional[ContentType] = None) -> int:
        stmt = select(func.count(ContentItemORM.id))
        if content_type is not None:
            stmt = stmt.where(ContentItemORM.type == content_type.value)
        with self.session() as session:
            return session.execute(stmt).scalar_one()

    def update_summary(self, content_id: int, summary: str):
        with self.session() as session:
            orm = session.get(ContentItemORM, content_id)
            if orm is not None:
                orm.summary = summary

    def update_image(self, content_id: int, image_url: str):
        with self.session() as session:
            orm = session.get(ContentItemORM, content_id)
            if orm is not None:
                orm.image_url = image_url

    def _delete_items(self, session: Session, content_ids: List[int]) -> int:
        if not content_ids:
            return 0
        # Explicit deletes: SQLite only honours ON DELETE CASCADE with foreign keys enabled
        session.execute(delete(ContentTagORM).where(ContentTagORM.content_id.in_(content_ids)))
        session.execute(delete(RegistrationORM).where(RegistrationORM.event_id.in_(content_ids)))
        result = session.execute(delete(ContentItemORM).where(ContentItemORM.id.in_(content_ids)))
        return result.rowcount

    def clear_content(self) -> int:
        """Delete every content item along with its tags and registrations.

        Returns the number of items deleted.
        """
        with self.session() as session:
            ids = session.execute(select(ContentItemORM.id)).scalars().all()
            return self._delete_items(session, ids)

    def delete_malformed_items(self) -> int:
        """Delete items whose title is missing or a scrape placeholder.

        Returns the number of items deleted.
        """
        with self.session() as session:
            stmt = select(ContentItemORM.id).where(
                or_(
                    ContentItemORM.title.is_(None),
                    func.trim(ContentItemORM.title).in_(sorted(PLACEHOLDER_TITLES)),
                )
            )
            ids = session.execute(stmt).scalars().all()
            return self._delete_items(session, ids)

    # Users, interests and registrations

    def add_user(
        self,
        username: str,
        password_hash: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        university: Optional[str] = None,
        study_program: Optional[str] = None,
        year_on_study_program: Optional[int] = None,
    ) -> int:
        """Insert a user. Returns the user id."""
        orm = UserORM(
            username=username,
            password_hash=password_hash,
            email=email,
            full_name=full_name,
            university=university,
            study_program=study_program,
            year_on_study_program=year_on_study_program,
        )
        with self.session() as session:
            session.add(orm)
            session.flush()
            return orm.id

    def user_exists(self, user_id: int) -> bool:
        with self.session() as session:
            return session.get(UserORM, user_id) is not None

    def get_user_profile(self, user_id: int) -> Optional[UserProfile]:
        """Get a user together with their interests and registrations."""
        with self.session() as session:
            user = session.get(UserORM, user_id)
            if user is None:
                return None
            interests = session.execute(
                select(InterestORM)
                .where(InterestORM.user_id == user_id)
                .order_by(InterestORM.id.asc())
            ).scalars().all()
            registrations = session.execute(
                select(RegistrationORM)
                .where(RegistrationORM.user_id == user_id)
                .order_by(RegistrationORM.registered_at.desc())
            ).scalars().all()
            return user_orm_to_profile(user, interests, registrations)

    def add_interest(self, user_id: int, tag: str) -> Interest:
        """Add an interest tag for a user.

        Raises:
            sqlalchemy.exc.IntegrityError: if the user already has this tag.
        """
        orm = InterestORM(user_id=user_id, tag=tag)
        with self.session() as session:
            session.add(orm)
            session.flush()
            return interest_orm_to_dataclass(orm)

    def get_interests(self, user_id: int) -> List[Interest]:
        with self.session() as session:
            stmt = select(InterestORM).where(InterestORM.user_id == user_id).order_by(InterestORM.id.asc())
            return [interest_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]

    def add_registration(self, user_id: int, event_id: int) -> Registration:
        """Register a user for an event with a server-assigned timestamp.

        Raises:
            sqlalchemy.exc.IntegrityError: if the user is already registered.
        """
        orm = RegistrationORM(
            user_id=user_id,
            event_id=event_id,
            registered_at=int(time.time()),
        )
        with self.session() as session:
            session.add(orm)
            session.flush()
            return registration_orm_to_dataclass(orm)

    def get_registrations(self, user_id: int) -> List[Registration]:
        with self.session() as session:
            stmt = (
                select(RegistrationORM)
                .where(RegistrationORM.user_id == user_id)
                .order_by(RegistrationORM.registered_at.desc())
            )
            return [registration_orm_to_dataclass(orm) for orm in session.execute(stmt).scalars().all()]
