"""
Base Repository Pattern

Purpose
-------
Type-safe, generic repository abstraction following SQLAlchemy 2.0 async
patterns. Repositories encapsulate data access and give every service the
same CRUD and locking vocabulary.

Design Notes
------------
This base repository provides:
- Type-safe CRUD operations
- Pessimistic locking support (``for_update`` / ``get_for_update``)
- Deterministic lock ordering for batches (``get_many_for_update`` orders by id)
- Bulk deletes by condition
- Classification of IntegrityError by constraint kind (``classify_integrity_error``)
- Existence/counting utilities
- Structured debug logging for every call

What this class does NOT do:
- Manage transactions (services/DatabaseService handle that)
- Contain business logic

Usage
-----
    class InventoryRepository(BaseRepository[InventoryEntry]):
        pass

    repo = InventoryRepository(InventoryEntry, get_logger(__name__))
    entries = await repo.find_many_where(
        session, InventoryEntry.player_id == player_id
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import delete, func, select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.exc import IntegrityError
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")

# PostgreSQL SQLSTATE class 23 codes
_SQLSTATE_KINDS = {
    "23502": "not_null",
    "23503": "foreign_key",
    "23505": "unique",
    "23514": "check",
}

# SQLite reports the kind only in the message text
_MESSAGE_KINDS = (
    ("foreign key", "foreign_key"),
    ("unique constraint", "unique"),
    ("duplicate key", "unique"),
    ("check constraint", "check"),
    ("not null", "not_null"),
)


def classify_integrity_error(exc: IntegrityError) -> Tuple[str, Optional[str]]:
    """
    Identify which kind of constraint rejected a write.

    Returns:
        (kind, constraint_name). ``kind`` is one of "unique", "foreign_key",
        "check", "not_null" or "unknown". ``constraint_name`` is only known
        on PostgreSQL.
    """
    orig = exc.orig
    driver_exc = getattr(orig, "__cause__", None) or orig

    sqlstate = getattr(driver_exc, "sqlstate", None) or getattr(orig, "pgcode", None)
    name = getattr(driver_exc, "constraint_name", None)

    if sqlstate in _SQLSTATE_KINDS:
        return _SQLSTATE_KINDS[sqlstate], name

    message = str(orig).lower()
    for fragment, kind in _MESSAGE_KINDS:
        if fragment in message:
            return kind, name
    return "unknown", name


class BaseRepository(Generic[T]):
    """
    Generic base repository for type-safe database operations.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    async def get(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        """Get a single record by primary key (no lock)."""
        instance = await session.get(self.model_class, id_value)

        self.log.debug(
            f"Repository.get: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": id_value,
                "found": instance is not None,
            },
        )

        return instance

    async def get_for_update(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        """
        Get a single record by primary key with SELECT FOR UPDATE.

        ``populate_existing`` refreshes an instance already in the identity
        map so the caller sees the locked row's current values.
        """
        instance = await session.get(
            self.model_class, id_value, with_for_update=True, populate_existing=True
        )

        self.log.debug(
            f"Repository.get_for_update: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": id_value,
                "found": instance is not None,
                "locked": True,
            },
        )

        return instance

    async def get_many(self, session: AsyncSession, id_values: List[Any]) -> List[T]:
        """Get multiple records by id (no lock). Missing ids are skipped."""
        stmt = select(self.model_class).where(
            self.model_class.id.in_(id_values)  # type: ignore[attr-defined]
        )
        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.get_many: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "requested_count": len(id_values),
                "found_count": len(instances),
            },
        )

        return instances

    async def get_many_for_update(
        self, session: AsyncSession, id_values: List[Any]
    ) -> List[T]:
        """
        Lock multiple records by id, in ascending id order.

        A fixed lock order keeps concurrent batches from deadlocking.
        """
        stmt = (
            select(self.model_class)
            .where(self.model_class.id.in_(id_values))  # type: ignore[attr-defined]
            .order_by(self.model_class.id)  # type: ignore[attr-defined]
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.get_many_for_update: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "requested_count": len(id_values),
                "found_count": len(instances),
                "locked": True,
            },
        )

        return instances

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        """Find a single record matching conditions."""
        stmt = select(self.model_class).where(*conditions)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.find_one_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found": instance is not None,
                "locked": for_update,
            },
        )

        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Optional[Sequence[Any]] = None,
        for_update: bool = False,
        limit: Optional[int] = None,
    ) -> List[T]:
        """
        Find multiple records matching conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            order_by: Optional ORDER BY clauses
            for_update: If True, use SELECT FOR UPDATE
            limit: Optional maximum number of results
        """
        stmt = select(self.model_class).where(*conditions)

        if order_by:
            stmt = stmt.order_by(*order_by)

        if for_update:
            stmt = stmt.with_for_update()

        if limit is not None:
            stmt = stmt.limit(limit)

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found_count": len(instances),
                "locked": for_update,
                "limit": limit,
            },
        )

        return instances

    async def exists(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        result = await session.execute(stmt)
        count = result.scalar_one()

        self.log.debug(
            f"Repository.exists: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__, "exists": count > 0},
        )

        return count > 0

    async def count(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        result = await session.execute(stmt)
        count = result.scalar_one()

        self.log.debug(
            f"Repository.count: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__, "count": count},
        )

        return count

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)

        self.log.debug(
            f"Repository.add: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )

        return instance

    def add_many(self, session: AsyncSession, instances: Sequence[T]) -> List[T]:
        session.add_all(instances)

        self.log.debug(
            f"Repository.add_many: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__, "count": len(instances)},
        )

        return list(instances)

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)

        self.log.debug(
            f"Repository.delete: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )

    async def delete_where(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> int:
        """
        Bulk-delete rows matching conditions.

        Returns:
            Number of rows deleted
        """
        stmt = (
            delete(self.model_class)
            .where(*conditions)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        deleted = result.rowcount or 0

        self.log.debug(
            f"Repository.delete_where: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__, "deleted": deleted},
        )

        return deleted

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()

        self.log.debug(
            f"Repository.flush: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )
