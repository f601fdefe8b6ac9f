"""
Generic gateway to the managed backend's relational store.

The gateway speaks in table names and plain row dicts so the typed store
on top of it stays independent of the concrete backend. An in-memory
implementation is used for development and tests; the SQLAlchemy one
accepts any SQLAlchemy URL (Postgres in production, SQLite in tests).
"""

from __future__ import annotations

import copy
import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    event,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from prayer_army.errors import BackendError, DuplicateRowError

logger = logging.getLogger(__name__)

PRAYER_REQUESTS = "prayer_requests"
FELLOWSHIPS = "fellowships"
TEAM_MEMBERS = "team_members"
PRAYER_COMPLETIONS = "prayer_completions"

TABLES = (PRAYER_REQUESTS, FELLOWSHIPS, TEAM_MEMBERS, PRAYER_COMPLETIONS)

# Column groups that must be unique per table.
UNIQUE_KEYS: Dict[str, tuple[tuple[str, ...], ...]] = {
    PRAYER_REQUESTS: (("id",), ("request_number",)),
    FELLOWSHIPS: (("id",),),
    TEAM_MEMBERS: (("id",),),
    PRAYER_COMPLETIONS: (("id",), ("prayer_request_id", "team_member_id")),
}

Row = Dict[str, Any]
Filters = Optional[Dict[str, Any]]


def format_request_number(issued_at: datetime, sequence: int) -> str:
    return f"PR-{issued_at:%Y%m%d}-{sequence:05d}"


class BackendGateway(Protocol):
    """Operations the service needs from the managed backend."""

    def insert(self, table: str, values: Row) -> Row:
        ...

    def select(
        self,
        table: str,
        filters: Filters = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        ...

    def update(self, table: str, filters: Dict[str, Any], values: Row) -> int:
        ...

    def delete(self, table: str, filters: Dict[str, Any]) -> int:
        ...

    def generate_request_number(self) -> str:
        ...


def _check_table(table: str) -> None:
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}")


def _matches(row: Row, filters: Filters) -> bool:
    if not filters:
        return True
    return all(row.get(key) == value for key, value in filters.items())


class InMemoryGateway:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.tables: Dict[str, List[Row]] = {name: [] for name in TABLES}
        self._sequence = itertools.count(1)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for rows in self.tables.values():
            rows.clear()
        self._sequence = itertools.count(1)

    def insert(self, table: str, values: Row) -> Row:
        _check_table(table)
        rows = self.tables[table]
        for key in UNIQUE_KEYS[table]:
            probe = {column: values.get(column) for column in key}
            if any(_matches(row, probe) for row in rows):
                raise DuplicateRowError(
                    f"{table} already has a row with {', '.join(key)} = {probe}"
                )
        row = copy.deepcopy(values)
        rows.append(row)
        return copy.deepcopy(row)

    def select(
        self,
        table: str,
        filters: Filters = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        _check_table(table)
        found = [copy.deepcopy(r) for r in self.tables[table] if _matches(r, filters)]
        if order_by:
            found.sort(key=lambda r: r[order_by], reverse=descending)
        return found

    def update(self, table: str, filters: Dict[str, Any], values: Row) -> int:
        _check_table(table)
        count = 0
        for row in self.tables[table]:
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                count += 1
        return count

    def delete(self, table: str, filters: Dict[str, Any]) -> int:
        _check_table(table)
        rows = self.tables[table]
        kept = [r for r in rows if not _matches(r, filters)]
        removed = len(rows) - len(kept)
        rows[:] = kept
        return removed

    def generate_request_number(self) -> str:
        return format_request_number(datetime.now(timezone.utc), next(self._sequence))


class SqlGateway:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlGateway")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _model(table: str):
        _check_table(table)
        return MODELS[table]

    @staticmethod
    def _to_row(obj) -> Row:
        row = {}
        for column in obj.__table__.columns:
            value = getattr(obj, column.key)
            if isinstance(value, datetime) and value.tzinfo is None:
                # SQLite drops the offset; everything is stored as UTC.
                value = value.replace(tzinfo=timezone.utc)
            row[column.key] = value
        return row

    @staticmethod
    def _where(model, filters: Filters) -> list:
        return [getattr(model, key) == value for key, value in (filters or {}).items()]

    def insert(self, table: str, values: Row) -> Row:
        model = self._model(table)
        try:
            with self.Session() as session:
                obj = model(**values)
                session.add(obj)
                session.commit()
                session.refresh(obj)
                return self._to_row(obj)
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise DuplicateRowError(f"{table} rejected a duplicate row") from exc
            logger.exception("Integrity error inserting into %s", table)
            raise BackendError(f"Could not save to {table}") from exc
        except SQLAlchemyError as exc:
            logger.exception("Insert into %s failed", table)
            raise BackendError(f"Could not save to {table}") from exc

    def select(
        self,
        table: str,
        filters: Filters = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Row]:
        model = self._model(table)
        stmt = select(model).where(*self._where(model, filters))
        if order_by:
            column = getattr(model, order_by)
            # Ties on the timestamp fall back to the primary key, which is
            # the insertion sequence where the table has one.
            keys = [column, model.__mapper__.primary_key[0]]
            stmt = stmt.order_by(*(k.desc() if descending else k.asc() for k in keys))
        try:
            with self.Session() as session:
                return [self._to_row(obj) for obj in session.execute(stmt).scalars()]
        except SQLAlchemyError as exc:
            logger.exception("Select from %s failed", table)
            raise BackendError(f"Could not load {table}") from exc

    def update(self, table: str, filters: Dict[str, Any], values: Row) -> int:
        model = self._model(table)
        stmt = (
            update(model)
            .where(*self._where(model, filters))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            with self.Session() as session:
                result = session.execute(stmt)
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.exception("Update of %s failed", table)
            raise BackendError(f"Could not update {table}") from exc

    def delete(self, table: str, filters: Dict[str, Any]) -> int:
        model = self._model(table)
        stmt = delete(model).where(*self._where(model, filters))
        try:
            with self.Session() as session:
                result = session.execute(stmt)
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.exception("Delete from %s failed", table)
            raise BackendError(f"Could not delete from {table}") from exc

    def generate_request_number(self) -> str:
        issued_at = datetime.now(timezone.utc)
        try:
            with self.Session() as session:
                row = RequestNumberRow(issued_at=issued_at)
                session.add(row)
                session.commit()
                return format_request_number(issued_at, row.sequence)
        except SQLAlchemyError as exc:
            logger.exception("Request number generation failed")
            raise BackendError("Could not generate a request number") from exc


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


Base = declarative_base()


class PrayerRequestRow(Base):
    __tablename__ = PRAYER_REQUESTS

    id = Column(String, primary_key=True)
    request_number = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    mobile_number = Column(String, nullable=False)
    prayer_text = Column(Text, nullable=True)
    voice_recording_url = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    document_url = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class FellowshipRow(Base):
    __tablename__ = FELLOWSHIPS

    # Insertion order; ids are random.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class TeamMemberRow(Base):
    __tablename__ = TEAM_MEMBERS

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False, unique=True)
    user_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    fellowship_id = Column(
        String,
        ForeignKey(f"{FELLOWSHIPS}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False)


class PrayerCompletionRow(Base):
    __tablename__ = PRAYER_COMPLETIONS
    __table_args__ = (
        UniqueConstraint(
            "prayer_request_id", "team_member_id", name="uq_completion_pair"
        ),
    )

    id = Column(String, primary_key=True)
    prayer_request_id = Column(
        String,
        ForeignKey(f"{PRAYER_REQUESTS}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_member_id = Column(
        String,
        ForeignKey(f"{TEAM_MEMBERS}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    completed_at = Column(DateTime(timezone=True), nullable=False)


class RequestNumberRow(Base):
    __tablename__ = "request_number_sequence"

    sequence = Column(Integer, primary_key=True, autoincrement=True)
    issued_at = Column(DateTime(timezone=True), nullable=False)


MODELS = {
    PRAYER_REQUESTS: PrayerRequestRow,
    FELLOWSHIPS: FellowshipRow,
    TEAM_MEMBERS: TeamMemberRow,
    PRAYER_COMPLETIONS: PrayerCompletionRow,
}
