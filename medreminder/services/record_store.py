"""
Record Store
============

Generic record access used by the scheduling core:

- query(collection, filters, order_by, limit) -> list of dict records
- insert_many(collection, records) -> records actually written
- update_one / delete_one by id, delete_many by filters

Filters are (field, op, value) triples. The SQLAlchemy implementation maps
collection names onto ORM models, stores every timestamp in UTC and
collapses inserts that hit a uniqueness constraint instead of failing.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medreminder.core.exceptions import RecordStoreError
from medreminder.database import Base
from medreminder.models.medicine import Medicine, MedicineDose, generate_uuid

logger = logging.getLogger(__name__)

Filter = Tuple[str, str, Any]

MEDICINES = "medicines"
DOSES = "medicine_doses"

COLLECTIONS: Dict[str, Type[Base]] = {
    MEDICINES: Medicine,
    DOSES: MedicineDose,
}

SUPPORTED_OPS = {"eq", "gt", "gte", "lt", "lte", "in"}


def eq(field: str, value: Any) -> Filter:
    return (field, "eq", value)


def gte(field: str, value: Any) -> Filter:
    return (field, "gte", value)


def lt(field: str, value: Any) -> Filter:
    return (field, "lt", value)


def is_in(field: str, values: Sequence[Any]) -> Filter:
    return (field, "in", list(values))


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC, treating naive values as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RecordStore(ABC):
    """Storage operations the scheduling core depends on"""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def insert_many(self, collection: str, records: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def update_one(self, collection: str, record_id: str, fields: Dict[str, Any]) -> bool:
        ...

    @abstractmethod
    def delete_one(self, collection: str, record_id: str) -> bool:
        ...

    @abstractmethod
    def delete_many(self, collection: str, filters: Sequence[Filter]) -> int:
        ...


class SqlAlchemyRecordStore(RecordStore):
    """RecordStore backed by a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def query(self, collection, filters=(), order_by=None, limit=None):
        model = self._model(collection)
        stmt = select(model)
        for clause in self._where(model, filters):
            stmt = stmt.where(clause)

        if order_by:
            descending = order_by.startswith("-")
            column = self._column(model, order_by.lstrip("-"))
            stmt = stmt.order_by(column.desc() if descending else column.asc())

        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            rows = self.db.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RecordStoreError(f"Query on {collection} failed: {e}") from e

        return [self._to_record(model, row) for row in rows]

    def insert_many(self, collection, records):
        if not records:
            return []

        model = self._model(collection)
        rows = []
        for record in records:
            row = {key: self._bind_value(value) for key, value in record.items()}
            row.setdefault("id", generate_uuid())
            rows.append(row)

        stmt = self._insert_ignoring_conflicts(model).values(rows)

        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RecordStoreError(f"Insert into {collection} failed: {e}") from e

        if result.rowcount is not None and result.rowcount == len(rows):
            return [dict(row) for row in rows]

        # Some rows collided with existing ones; report only what was written
        written = self.query(collection, [is_in("id", [row["id"] for row in rows])])
        skipped = len(rows) - len(written)
        if skipped:
            logger.info(f"Skipped {skipped} conflicting row(s) inserting into {collection}")
        return written

    def update_one(self, collection, record_id, fields):
        model = self._model(collection)
        values = {key: self._bind_value(value) for key, value in fields.items()}
        stmt = update(model).where(model.id == record_id).values(**values)
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RecordStoreError(f"Update on {collection} failed: {e}") from e
        return result.rowcount > 0

    def delete_one(self, collection, record_id):
        model = self._model(collection)
        try:
            result = self.db.execute(delete(model).where(model.id == record_id))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RecordStoreError(f"Delete on {collection} failed: {e}") from e
        return result.rowcount > 0

    def delete_many(self, collection, filters):
        model = self._model(collection)
        stmt = delete(model)
        for clause in self._where(model, filters):
            stmt = stmt.where(clause)
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RecordStoreError(f"Delete on {collection} failed: {e}") from e
        return result.rowcount

    def _insert_ignoring_conflicts(self, model):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model).on_conflict_do_nothing()
        if dialect == "sqlite":
            return sqlite.insert(model).on_conflict_do_nothing()
        return insert(model)

    @staticmethod
    def _model(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise RecordStoreError(f"Unknown collection: {collection}")

    @staticmethod
    def _column(model, field: str):
        column = model.__table__.columns.get(field)
        if column is None:
            raise RecordStoreError(f"Unknown field {field} on {model.__tablename__}")
        return column

    def _where(self, model, filters: Sequence[Filter]):
        clauses = []
        for field, op, value in filters:
            if op not in SUPPORTED_OPS:
                raise RecordStoreError(f"Unsupported filter operator: {op}")
            column = self._column(model, field)
            if op == "in":
                clauses.append(column.in_([self._bind_value(v) for v in value]))
                continue

            value = self._bind_value(value)
            if op == "eq":
                clauses.append(column.is_(None) if value is None else column == value)
            elif op == "gt":
                clauses.append(column > value)
            elif op == "gte":
                clauses.append(column >= value)
            elif op == "lt":
                clauses.append(column < value)
            elif op == "lte":
                clauses.append(column <= value)
        return clauses

    @staticmethod
    def _bind_value(value: Any) -> Any:
        if isinstance(value, datetime):
            return to_utc(value)
        return value

    @staticmethod
    def _to_record(model, row) -> Dict[str, Any]:
        record = {}
        for column in model.__table__.columns:
            value = getattr(row, column.key)
            # SQLite hands back naive timestamps; everything is stored in UTC
            if isinstance(value, datetime):
                value = to_utc(value)
            record[column.key] = value
        return record
