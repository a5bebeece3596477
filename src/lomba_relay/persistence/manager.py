# ABOUTME: Database manager for competition records
# ABOUTME: Dedup key reads, bulk draft insertion, fill-only enrichment updates, and delivery selection

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, col, func, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession

from lomba_relay.config import get_config
from lomba_relay.persistence.models import STATUS_PUBLISHED, CompetitionRecord, utcnow
from lomba_relay.utils.logging import get_logger
from lomba_relay.utils.retry import PersistenceError

# Columns the extraction stage may fill
ENRICHABLE_FIELDS = (
    "title",
    "organizer",
    "category",
    "level",
    "start_date",
    "end_date",
    "format",
    "participation_type",
    "pricing",
    "registration_url",
    "location",
    "contact",
)


def is_empty(value: Any) -> bool:
    """None, blank strings and empty collections count as 'no value'."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


@dataclass(slots=True)
class DedupKeys:
    """Persisted keys used to reject already-known candidates."""

    source_urls: set[str] = field(default_factory=set)
    descriptions: set[str] = field(default_factory=set)


class DatabaseManager:
    """Manages async database operations for competition records."""

    def __init__(self, database_url: str | None = None, max_connections: int | None = None):
        config = get_config()
        self.database_url = database_url or config.database_url
        self.logger = get_logger(__name__)

        engine_kwargs: dict[str, Any] = {}
        url = make_url(self.database_url)
        # In-memory SQLite runs on a single static connection
        if not (url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")):
            engine_kwargs["pool_size"] = max_connections or config.db_max_connections
            engine_kwargs["max_overflow"] = 0
        self.engine = create_async_engine(self.database_url, echo=False, **engine_kwargs)
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncGenerator[None, None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.logger.error("Database operation failed", operation=operation, error=str(e))
            raise PersistenceError(f"{operation} failed: {e}") from e

    async def create_tables(self) -> None:
        async with self._guard("create_tables"):
            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

    async def fetch_dedup_keys(self) -> DedupKeys:
        """Read every persisted non-null source URL and trimmed description."""
        keys = DedupKeys()
        async with self._guard("fetch_dedup_keys"), self.async_session() as session:
            rows = await session.exec(
                select(CompetitionRecord.source_url, CompetitionRecord.description).where(
                    or_(col(CompetitionRecord.source_url).is_not(None), col(CompetitionRecord.description).is_not(None))
                )
            )
            for source_url, description in rows.all():
                if source_url:
                    keys.source_urls.add(source_url)
                if description and description.strip():
                    keys.descriptions.add(description.strip())
        return keys

    async def insert_drafts(self, records: list[CompetitionRecord]) -> list[int]:
        """Insert draft records in one transaction and return their ids in input order."""
        if not records:
            return []
        async with self._guard("insert_drafts"), self.async_session() as session:
            session.add_all(records)
            await session.flush()
            ids = [record.id for record in records if record.id is not None]
            await session.commit()
        self.logger.info("Inserted draft records", count=len(ids))
        return ids

    async def get_record(self, record_id: int) -> CompetitionRecord | None:
        async with self._guard("get_record"), self.async_session() as session:
            return await session.get(CompetitionRecord, record_id)

    async def get_records(self, record_ids: Iterable[int]) -> list[CompetitionRecord]:
        ids = list(record_ids)
        if not ids:
            return []
        async with self._guard("get_records"), self.async_session() as session:
            result = await session.exec(
                select(CompetitionRecord)
                .where(col(CompetitionRecord.id).in_(ids))
                .order_by(col(CompetitionRecord.id))
            )
            return list(result.all())

    async def fill_missing_fields(self, record_id: int, values: dict[str, Any]) -> list[str]:
        """Write extracted values into columns that are still empty.

        Columns that already hold a value are left untouched, so applying the same
        values twice is a no-op the second time. Returns the names of columns written.
        """
        candidates = {k: v for k, v in values.items() if k in ENRICHABLE_FIELDS and not is_empty(v)}
        if not candidates:
            return []

        async with self._guard("fill_missing_fields"), self.async_session() as session:
            record = await session.get(CompetitionRecord, record_id)
            if record is None:
                self.logger.warning("Record not found for update", record_id=record_id)
                return []

            written = []
            for name, value in candidates.items():
                if is_empty(getattr(record, name)):
                    setattr(record, name, value)
                    written.append(name)

            if written:
                record.updated_at = utcnow()
                session.add(record)
                await session.commit()
        return written

    def _deliverable_query(self, today: date):
        return select(CompetitionRecord).where(
            col(CompetitionRecord.delivered_to_channel).is_not(True),
            col(CompetitionRecord.title).is_not(None),
            func.trim(CompetitionRecord.title) != "",
            col(CompetitionRecord.poster_url).is_not(None),
            func.trim(CompetitionRecord.poster_url) != "",
            or_(col(CompetitionRecord.end_date).is_(None), col(CompetitionRecord.end_date) >= today),
        )

    async def select_deliverable(self, today: date) -> list[CompetitionRecord]:
        """Undelivered records with a title and poster that have not expired, oldest first."""
        async with self._guard("select_deliverable"), self.async_session() as session:
            result = await session.exec(self._deliverable_query(today).order_by(col(CompetitionRecord.id)))
            return list(result.all())

    async def select_random_deliverable(self, today: date, limit: int) -> list[CompetitionRecord]:
        async with self._guard("select_random_deliverable"), self.async_session() as session:
            result = await session.exec(self._deliverable_query(today).order_by(func.random()).limit(limit))
            return list(result.all())

    async def mark_delivered(self, record_id: int) -> None:
        async with self._guard("mark_delivered"), self.async_session() as session:
            record = await session.get(CompetitionRecord, record_id)
            if record is None:
                return
            record.delivered_to_channel = True
            record.status = STATUS_PUBLISHED
            record.updated_at = utcnow()
            session.add(record)
            await session.commit()

    async def close(self) -> None:
        """Dispose the engine; close failures are logged, not raised."""
        try:
            await self.engine.dispose()
        except Exception as e:
            self.logger.warning("Failed to close database engine", error=str(e), error_type=type(e).__name__)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield an async session that commits on success and rolls back on error."""
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
