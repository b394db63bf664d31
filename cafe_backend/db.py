"""
Table-store abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from cafe_backend.errors import GatewayError


def iso_timestamp(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


class DbClient(Protocol):
    """Interface for table-store access."""

    def create_registration(
        self, registration: "RegistrationRecord"
    ) -> "RegistrationRecord":
        ...

    def get_registration(self, registration_id: str) -> Optional["RegistrationRecord"]:
        ...

    def list_registrations(self) -> list["RegistrationRecord"]:
        ...

    def delete_registration(self, registration_id: str) -> int:
        ...

    def count_registrations(self) -> int:
        ...

    def get_event_config(self, config_id: str) -> Optional["EventConfigRecord"]:
        ...

    def get_active_event_config(self) -> Optional["EventConfigRecord"]:
        ...

    def get_latest_event_config(self) -> Optional["EventConfigRecord"]:
        ...

    def list_event_configs(self) -> list["EventConfigRecord"]:
        ...

    def deactivate_event_configs(self) -> int:
        ...

    def insert_event_config(
        self, config: "EventConfigRecord"
    ) -> "EventConfigRecord":
        ...

    def update_event_config(self, config: "EventConfigRecord") -> int:
        ...

    def get_active_terms(self) -> Optional["TermsRecord"]:
        ...

    def list_terms(self) -> list["TermsRecord"]:
        ...

    def deactivate_terms(self) -> int:
        ...

    def insert_terms(self, terms: "TermsRecord") -> "TermsRecord":
        ...

    def save_feedback(self, feedback: "FeedbackRecord") -> "FeedbackRecord":
        ...

    def list_feedback(self) -> list["FeedbackRecord"]:
        ...

    def count_feedback(self) -> int:
        ...

    def record_visit(self, visit: "VisitRecord") -> "VisitRecord":
        ...

    def list_visits(self, limit: Optional[int] = None) -> list["VisitRecord"]:
        ...

    def list_visited_pages(self) -> list[str]:
        ...

    def count_visits(self, since: Optional[float] = None) -> int:
        ...


@dataclass
class RegistrationRecord:
    name: str
    email: str
    phone: str
    experience: str
    payment_screenshot_url: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "experience": self.experience,
            "payment_screenshot_url": self.payment_screenshot_url,
            "created_at": iso_timestamp(self.created_at),
            "updated_at": iso_timestamp(self.updated_at),
        }


@dataclass
class EventConfigRecord:
    title: str
    description: str
    event_date: str
    start_time: str
    end_time: str
    min_participants: int
    max_participants: int
    price_per_person: float
    down_payment_percentage: int
    featured_coffees: Optional[str] = None
    additional_info: Optional[str] = None
    is_active: bool = True
    id: str = field(default_factory=_new_id)
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "event_date": self.event_date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "min_participants": self.min_participants,
            "max_participants": self.max_participants,
            "price_per_person": self.price_per_person,
            "down_payment_percentage": self.down_payment_percentage,
            "featured_coffees": self.featured_coffees,
            "additional_info": self.additional_info,
            "is_active": self.is_active,
            "updated_at": iso_timestamp(self.updated_at),
        }


@dataclass
class TermsRecord:
    title: str
    content: str
    version: str = "1.0"
    is_active: bool = True
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "version": self.version,
            "is_active": self.is_active,
            "created_at": iso_timestamp(self.created_at),
            "updated_at": iso_timestamp(self.updated_at),
        }


@dataclass
class FeedbackRecord:
    name: str
    email: str
    message: str
    rating: Optional[int] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "message": self.message,
            "rating": self.rating,
            "created_at": iso_timestamp(self.created_at),
        }


@dataclass
class VisitRecord:
    page_visited: str
    session_id: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    ip_address: Optional[str] = None
    id: str = field(default_factory=_new_id)
    visit_timestamp: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "page_visited": self.page_visited,
            "session_id": self.session_id,
            "user_agent": self.user_agent,
            "referrer": self.referrer,
            "ip_address": self.ip_address,
            "visit_timestamp": iso_timestamp(self.visit_timestamp),
        }


def _newest_first(items, key):
    # Later inserts win ties on equal timestamps.
    return sorted(reversed(list(items)), key=key, reverse=True)


class InMemoryDbClient:
    """Simple in-memory table store for development and tests."""

    def __init__(self):
        self.registrations: Dict[str, RegistrationRecord] = {}
        self.event_configs: Dict[str, EventConfigRecord] = {}
        self.terms: Dict[str, TermsRecord] = {}
        self.feedback: Dict[str, FeedbackRecord] = {}
        self.visits: Dict[str, VisitRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.registrations.clear()
        self.event_configs.clear()
        self.terms.clear()
        self.feedback.clear()
        self.visits.clear()

    def create_registration(
        self, registration: RegistrationRecord
    ) -> RegistrationRecord:
        self.registrations[registration.id] = registration
        return registration

    def get_registration(self, registration_id: str) -> Optional[RegistrationRecord]:
        return self.registrations.get(registration_id)

    def list_registrations(self) -> list[RegistrationRecord]:
        return _newest_first(self.registrations.values(), lambda r: r.created_at)

    def delete_registration(self, registration_id: str) -> int:
        if self.registrations.pop(registration_id, None) is None:
            return 0
        return 1

    def count_registrations(self) -> int:
        return len(self.registrations)

    def get_event_config(self, config_id: str) -> Optional[EventConfigRecord]:
        return self.event_configs.get(config_id)

    def get_active_event_config(self) -> Optional[EventConfigRecord]:
        for config in self.list_event_configs():
            if config.is_active:
                return config
        return None

    def get_latest_event_config(self) -> Optional[EventConfigRecord]:
        configs = self.list_event_configs()
        return configs[0] if configs else None

    def list_event_configs(self) -> list[EventConfigRecord]:
        return _newest_first(self.event_configs.values(), lambda c: c.updated_at)

    def deactivate_event_configs(self) -> int:
        changed = 0
        for config in self.event_configs.values():
            if config.is_active:
                config.is_active = False
                changed += 1
        return changed

    def insert_event_config(self, config: EventConfigRecord) -> EventConfigRecord:
        self.event_configs[config.id] = config
        return config

    def update_event_config(self, config: EventConfigRecord) -> int:
        if config.id not in self.event_configs:
            return 0
        self.event_configs[config.id] = config
        return 1

    def get_active_terms(self) -> Optional[TermsRecord]:
        for terms in self.list_terms():
            if terms.is_active:
                return terms
        return None

    def list_terms(self) -> list[TermsRecord]:
        return _newest_first(self.terms.values(), lambda t: t.created_at)

    def deactivate_terms(self) -> int:
        changed = 0
        for terms in self.terms.values():
            if terms.is_active:
                terms.is_active = False
                terms.updated_at = time.time()
                changed += 1
        return changed

    def insert_terms(self, terms: TermsRecord) -> TermsRecord:
        self.terms[terms.id] = terms
        return terms

    def save_feedback(self, feedback: FeedbackRecord) -> FeedbackRecord:
        self.feedback[feedback.id] = feedback
        return feedback

    def list_feedback(self) -> list[FeedbackRecord]:
        return _newest_first(self.feedback.values(), lambda f: f.created_at)

    def count_feedback(self) -> int:
        return len(self.feedback)

    def record_visit(self, visit: VisitRecord) -> VisitRecord:
        self.visits[visit.id] = visit
        return visit

    def list_visits(self, limit: Optional[int] = None) -> list[VisitRecord]:
        visits = _newest_first(self.visits.values(), lambda v: v.visit_timestamp)
        if limit is not None:
            visits = visits[:limit]
        return visits

    def list_visited_pages(self) -> list[str]:
        return [visit.page_visited for visit in self.visits.values()]

    def count_visits(self, since: Optional[float] = None) -> int:
        if since is None:
            return len(self.visits)
        return sum(1 for v in self.visits.values() if v.visit_timestamp >= since)


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            raise GatewayError(str(exc.__cause__ or exc)) from exc

    # Registrations

    def _to_registration(self, row: "RegistrationRow") -> RegistrationRecord:
        return RegistrationRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            experience=row.experience,
            payment_screenshot_url=row.payment_screenshot_url,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create_registration(
        self, registration: RegistrationRecord
    ) -> RegistrationRecord:
        with self._session() as session:
            row = RegistrationRow(
                id=registration.id,
                name=registration.name,
                email=registration.email,
                phone=registration.phone,
                experience=registration.experience,
                payment_screenshot_url=registration.payment_screenshot_url,
                created_at=registration.created_at,
                updated_at=registration.updated_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_registration(row)

    def get_registration(self, registration_id: str) -> Optional[RegistrationRecord]:
        with self._session() as session:
            row = session.get(RegistrationRow, registration_id)
            return self._to_registration(row) if row else None

    def list_registrations(self) -> list[RegistrationRecord]:
        with self._session() as session:
            stmt = select(RegistrationRow).order_by(RegistrationRow.created_at.desc())
            return [self._to_registration(r) for r in session.execute(stmt).scalars()]

    def delete_registration(self, registration_id: str) -> int:
        with self._session() as session:
            result = session.execute(
                delete(RegistrationRow).where(RegistrationRow.id == registration_id)
            )
            session.commit()
            return result.rowcount or 0

    def count_registrations(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(RegistrationRow))

    # Event configuration

    def _to_event_config(self, row: "EventConfigRow") -> EventConfigRecord:
        return EventConfigRecord(
            id=row.id,
            title=row.title,
            description=row.description,
            event_date=row.event_date,
            start_time=row.start_time,
            end_time=row.end_time,
            min_participants=row.min_participants,
            max_participants=row.max_participants,
            price_per_person=row.price_per_person,
            down_payment_percentage=row.down_payment_percentage,
            featured_coffees=row.featured_coffees,
            additional_info=row.additional_info,
            is_active=row.is_active,
            updated_at=row.updated_at,
        )

    def _event_config_values(self, config: EventConfigRecord) -> dict:
        values = config.as_dict()
        values["updated_at"] = config.updated_at
        return values

    def get_event_config(self, config_id: str) -> Optional[EventConfigRecord]:
        with self._session() as session:
            row = session.get(EventConfigRow, config_id)
            return self._to_event_config(row) if row else None

    def get_active_event_config(self) -> Optional[EventConfigRecord]:
        with self._session() as session:
            stmt = (
                select(EventConfigRow)
                .where(EventConfigRow.is_active.is_(True))
                .order_by(EventConfigRow.updated_at.desc())
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_event_config(row) if row else None

    def get_latest_event_config(self) -> Optional[EventConfigRecord]:
        with self._session() as session:
            stmt = (
                select(EventConfigRow)
                .order_by(EventConfigRow.updated_at.desc())
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_event_config(row) if row else None

    def list_event_configs(self) -> list[EventConfigRecord]:
        with self._session() as session:
            stmt = select(EventConfigRow).order_by(EventConfigRow.updated_at.desc())
            return [self._to_event_config(r) for r in session.execute(stmt).scalars()]

    def deactivate_event_configs(self) -> int:
        with self._session() as session:
            result = session.execute(
                update(EventConfigRow)
                .where(EventConfigRow.is_active.is_(True))
                .values(is_active=False)
            )
            session.commit()
            return result.rowcount or 0

    def insert_event_config(self, config: EventConfigRecord) -> EventConfigRecord:
        with self._session() as session:
            row = EventConfigRow(**self._event_config_values(config))
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_event_config(row)

    def update_event_config(self, config: EventConfigRecord) -> int:
        values = self._event_config_values(config)
        values.pop("id")
        with self._session() as session:
            result = session.execute(
                update(EventConfigRow)
                .where(EventConfigRow.id == config.id)
                .values(**values)
            )
            session.commit()
            return result.rowcount or 0

    # Terms

    def _to_terms(self, row: "TermsRow") -> TermsRecord:
        return TermsRecord(
            id=row.id,
            title=row.title,
            content=row.content,
            version=row.version,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def get_active_terms(self) -> Optional[TermsRecord]:
        with self._session() as session:
            stmt = (
                select(TermsRow)
                .where(TermsRow.is_active.is_(True))
                .order_by(TermsRow.created_at.desc())
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_terms(row) if row else None

    def list_terms(self) -> list[TermsRecord]:
        with self._session() as session:
            stmt = select(TermsRow).order_by(TermsRow.created_at.desc())
            return [self._to_terms(r) for r in session.execute(stmt).scalars()]

    def deactivate_terms(self) -> int:
        with self._session() as session:
            result = session.execute(
                update(TermsRow)
                .where(TermsRow.is_active.is_(True))
                .values(is_active=False, updated_at=time.time())
            )
            session.commit()
            return result.rowcount or 0

    def insert_terms(self, terms: TermsRecord) -> TermsRecord:
        with self._session() as session:
            row = TermsRow(
                id=terms.id,
                title=terms.title,
                content=terms.content,
                version=terms.version,
                is_active=terms.is_active,
                created_at=terms.created_at,
                updated_at=terms.updated_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_terms(row)

    # Feedback

    def _to_feedback(self, row: "FeedbackRow") -> FeedbackRecord:
        return FeedbackRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            message=row.message,
            rating=row.rating,
            created_at=row.created_at,
        )

    def save_feedback(self, feedback: FeedbackRecord) -> FeedbackRecord:
        with self._session() as session:
            row = FeedbackRow(
                id=feedback.id,
                name=feedback.name,
                email=feedback.email,
                message=feedback.message,
                rating=feedback.rating,
                created_at=feedback.created_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_feedback(row)

    def list_feedback(self) -> list[FeedbackRecord]:
        with self._session() as session:
            stmt = select(FeedbackRow).order_by(FeedbackRow.created_at.desc())
            return [self._to_feedback(r) for r in session.execute(stmt).scalars()]

    def count_feedback(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(FeedbackRow))

    # Visitor log

    def _to_visit(self, row: "VisitRow") -> VisitRecord:
        return VisitRecord(
            id=row.id,
            page_visited=row.page_visited,
            session_id=row.session_id,
            user_agent=row.user_agent,
            referrer=row.referrer,
            ip_address=row.ip_address,
            visit_timestamp=row.visit_timestamp,
        )

    def record_visit(self, visit: VisitRecord) -> VisitRecord:
        with self._session() as session:
            row = VisitRow(
                id=visit.id,
                page_visited=visit.page_visited,
                session_id=visit.session_id,
                user_agent=visit.user_agent,
                referrer=visit.referrer,
                ip_address=visit.ip_address,
                visit_timestamp=visit.visit_timestamp,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_visit(row)

    def list_visits(self, limit: Optional[int] = None) -> list[VisitRecord]:
        with self._session() as session:
            stmt = select(VisitRow).order_by(VisitRow.visit_timestamp.desc())
            if limit is not None:
                stmt = stmt.limit(limit)
            return [self._to_visit(r) for r in session.execute(stmt).scalars()]

    def list_visited_pages(self) -> list[str]:
        with self._session() as session:
            return list(session.execute(select(VisitRow.page_visited)).scalars())

    def count_visits(self, since: Optional[float] = None) -> int:
        with self._session() as session:
            stmt = select(func.count()).select_from(VisitRow)
            if since is not None:
                stmt = stmt.where(VisitRow.visit_timestamp >= since)
            return session.scalar(stmt)


Base = declarative_base()


class RegistrationRow(Base):
    __tablename__ = "coffee_tasting_registrations"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=False)
    experience = Column(String, nullable=False)
    payment_screenshot_url = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, index=True)
    updated_at = Column(Float, nullable=False)


class EventConfigRow(Base):
    __tablename__ = "coffee_tasting_config"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    event_date = Column(String, nullable=False)
    start_time = Column(String, nullable=False)
    end_time = Column(String, nullable=False)
    min_participants = Column(Integer, nullable=False)
    max_participants = Column(Integer, nullable=False)
    price_per_person = Column(Float, nullable=False)
    down_payment_percentage = Column(Integer, nullable=False)
    featured_coffees = Column(Text, nullable=True)
    additional_info = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    updated_at = Column(Float, nullable=False)


class TermsRow(Base):
    __tablename__ = "terms_agreements"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    version = Column(String, nullable=False, default="1.0")
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class FeedbackRow(Base):
    __tablename__ = "feedback"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    rating = Column(Integer, nullable=True)
    created_at = Column(Float, nullable=False, index=True)


class VisitRow(Base):
    __tablename__ = "website_visitors"

    id = Column(String, primary_key=True)
    page_visited = Column(String, nullable=False, index=True)
    session_id = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    referrer = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    visit_timestamp = Column(Float, nullable=False, index=True)
