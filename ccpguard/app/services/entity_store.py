"""
Entity Store Abstraction Layer.

Generic create/update/get/filter access to the records of the CCP workflow,
addressed by entity type name ("CCPCheckRecord", "IncidentRecord", ...).

The SqlEntityStore commits every call in its own transaction, so a failed
dependent write can never roll back an audit record written before it.
The InMemoryEntityStore implements the same contract for development and CI.

Both stores enforce the audit-chain rules at the persistence seam:
CCP check records are immutable and incident records only accept updates to
their resolution and annotation fields.
"""
import copy
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ccpguard.app.core.errors import ImmutableRecordError, StoreError
from ccpguard.app.models import ENTITY_MODELS

Record = Dict[str, Any]

IMMUTABLE_ENTITIES = frozenset({"CCPCheckRecord", "IncidentAuditEntry"})

# Fields that may change after creation; everything else is fixed
UPDATABLE_FIELDS: Dict[str, frozenset] = {
    "IncidentRecord": frozenset({
        "resolution_result",
        "recheck_passed",
        "resolved_by_check_id",
        "corrective_action_type",
        "corrective_action_description",
        "action_taken_by_id",
        "action_taken_by_name",
        "action_taken_by_email",
        "action_time",
        "manager_notes",
        "manager_notes_by_id",
        "manager_notes_by_email",
        "manager_notes_time",
    }),
    "CorrectiveAction": frozenset({"status", "completed_by_id", "completed_at"}),
}

UNIQUE_FIELDS: Dict[str, tuple] = {
    "CCPCheckRecord": ("submission_id",),
    "IncidentRecord": ("ccp_check_id",),
    "StaffMember": ("email",),
}


def _column_names(entity_type: str) -> List[str]:
    model = ENTITY_MODELS.get(entity_type)
    if model is None:
        raise StoreError(f"Unknown entity type '{entity_type}'")
    return [attr.key for attr in inspect(model).mapper.column_attrs]


def _check_fields(entity_type: str, record: Record) -> None:
    unknown = set(record) - set(_column_names(entity_type))
    if unknown:
        raise StoreError(f"Unknown fields for {entity_type}: {sorted(unknown)}")


def _check_update_allowed(entity_type: str, partial: Record) -> None:
    if entity_type in IMMUTABLE_ENTITIES:
        raise ImmutableRecordError(f"{entity_type} records are immutable")
    allowed = UPDATABLE_FIELDS.get(entity_type)
    if allowed is not None:
        blocked = set(partial) - allowed
        if blocked:
            raise ImmutableRecordError(
                f"{entity_type} fields {sorted(blocked)} cannot change after creation"
            )


def _normalise(value: Any) -> Any:
    # SQLite drops tzinfo on the way back
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EntityStore(ABC):
    """Abstract persistence collaborator."""

    @abstractmethod
    async def create(self, entity_type: str, record: Record) -> Record:
        """Persist a new record and return it with its ``id``."""
        ...

    @abstractmethod
    async def update(self, entity_type: str, record_id: str, partial: Record) -> Record:
        ...

    @abstractmethod
    async def get(self, entity_type: str, record_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def filter(
        self,
        entity_type: str,
        criteria: Optional[Record] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        """
        Return records whose fields equal every value in ``criteria``.
        ``order_by`` names a field; a leading '-' sorts descending.
        """
        ...


class SqlEntityStore(EntityStore):
    """
    SQLAlchemy-backed store. Every call runs in its own session and commits
    before returning.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _model(entity_type: str):
        model = ENTITY_MODELS.get(entity_type)
        if model is None:
            raise StoreError(f"Unknown entity type '{entity_type}'")
        return model

    @staticmethod
    def _to_dict(obj) -> Record:
        return {
            attr.key: _normalise(getattr(obj, attr.key))
            for attr in inspect(obj).mapper.column_attrs
        }

    async def create(self, entity_type: str, record: Record) -> Record:
        model = self._model(entity_type)
        _check_fields(entity_type, record)
        try:
            async with self.session_factory() as session:
                obj = model(**record)
                session.add(obj)
                await session.commit()
                await session.refresh(obj)
                return self._to_dict(obj)
        except SQLAlchemyError as e:
            raise StoreError(f"Create {entity_type} failed: {e}") from e

    async def update(self, entity_type: str, record_id: str, partial: Record) -> Record:
        model = self._model(entity_type)
        _check_update_allowed(entity_type, partial)
        _check_fields(entity_type, partial)
        try:
            async with self.session_factory() as session:
                obj = await session.get(model, record_id)
                if obj is None:
                    raise StoreError(f"{entity_type} {record_id} not found")
                for key, value in partial.items():
                    setattr(obj, key, value)
                await session.commit()
                await session.refresh(obj)
                return self._to_dict(obj)
        except SQLAlchemyError as e:
            raise StoreError(f"Update {entity_type} {record_id} failed: {e}") from e

    async def get(self, entity_type: str, record_id: str) -> Optional[Record]:
        model = self._model(entity_type)
        try:
            async with self.session_factory() as session:
                obj = await session.get(model, record_id)
                return self._to_dict(obj) if obj is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"Get {entity_type} {record_id} failed: {e}") from e

    async def filter(
        self,
        entity_type: str,
        criteria: Optional[Record] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        model = self._model(entity_type)
        criteria = criteria or {}
        _check_fields(entity_type, criteria)

        query = select(model).where(
            *[getattr(model, field) == value for field, value in criteria.items()]
        )
        if order_by:
            field = order_by.lstrip("-")
            _check_fields(entity_type, {field: None})
            column = getattr(model, field)
            query = query.order_by(column.desc() if order_by.startswith("-") else column.asc())
        if limit:
            query = query.limit(limit)

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [self._to_dict(obj) for obj in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Filter {entity_type} failed: {e}") from e


class InMemoryEntityStore(EntityStore):
    """
    Lightweight in-memory store for development and CI where no database is
    available. Records are copied on the way in and out.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[str, Record]] = {}

    def _table(self, entity_type: str) -> Dict[str, Record]:
        if entity_type not in ENTITY_MODELS:
            raise StoreError(f"Unknown entity type '{entity_type}'")
        return self._tables.setdefault(entity_type, {})

    def seed(self, entity_type: str, record: Record) -> Record:
        """Insert a record synchronously (fixtures and bootstrap data)."""
        table = self._table(entity_type)
        _check_fields(entity_type, record)
        stored = copy.deepcopy(record)
        stored.setdefault("id", str(uuid.uuid4()))
        table[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def create(self, entity_type: str, record: Record) -> Record:
        table = self._table(entity_type)
        _check_fields(entity_type, record)
        for field in UNIQUE_FIELDS.get(entity_type, ()):
            value = record.get(field)
            if value is not None and any(r.get(field) == value for r in table.values()):
                raise StoreError(f"{entity_type}.{field} '{value}' already exists")
        return self.seed(entity_type, record)

    async def update(self, entity_type: str, record_id: str, partial: Record) -> Record:
        table = self._table(entity_type)
        _check_update_allowed(entity_type, partial)
        _check_fields(entity_type, partial)
        if record_id not in table:
            raise StoreError(f"{entity_type} {record_id} not found")
        table[record_id].update(copy.deepcopy(partial))
        return copy.deepcopy(table[record_id])

    async def get(self, entity_type: str, record_id: str) -> Optional[Record]:
        record = self._table(entity_type).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def filter(
        self,
        entity_type: str,
        criteria: Optional[Record] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        criteria = criteria or {}
        _check_fields(entity_type, criteria)
        rows = [
            r for r in self._table(entity_type).values()
            if all(r.get(field) == value for field, value in criteria.items())
        ]
        if order_by:
            field = order_by.lstrip("-")
            rows.sort(
                key=lambda r: (r.get(field) is not None, r.get(field)),
                reverse=order_by.startswith("-"),
            )
        if limit:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]
