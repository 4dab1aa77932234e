"""Relational Item Store backed by SQLAlchemy."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    delete,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from clouddrive.errors import NotFoundError, StoreUnavailableError
from clouddrive.models import AccessLevel, Item, ItemKind, ShareGrant
from clouddrive.util.time import ensure_utc, now_utc

from .base import ItemQuery, ItemStore, check_updatable

logger = logging.getLogger(__name__)

Base = declarative_base()


class FolderRow(Base):
    __tablename__ = "folders"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    parent_folder_id = Column(String(36), nullable=True, index=True)
    is_starred = Column(Boolean, nullable=False, default=False)
    is_trashed = Column(Boolean, nullable=False, default=False)
    shared = Column(Boolean, nullable=False, default=False)
    trashed_at = Column(DateTime(timezone=True), nullable=True)
    trash_root_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)


class FileRow(Base):
    __tablename__ = "files"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    parent_folder_id = Column(String(36), nullable=True, index=True)
    is_starred = Column(Boolean, nullable=False, default=False)
    is_trashed = Column(Boolean, nullable=False, default=False)
    shared = Column(Boolean, nullable=False, default=False)
    trashed_at = Column(DateTime(timezone=True), nullable=True)
    trash_root_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    file_path = Column(String, nullable=False)
    file_type = Column(String, nullable=True)
    size = Column(BigInteger, nullable=False, default=0)


class SharedFileRow(Base):
    __tablename__ = "shared_files"

    row_id = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, index=True)
    file_id = Column(String(36), ForeignKey("files.id"), nullable=False, index=True)
    shared_by = Column(String, nullable=False)
    shared_with = Column(String, nullable=True)
    access_level = Column(String(8), nullable=False, default=AccessLevel.VIEW.value)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)


_ROW_CLASSES: dict[ItemKind, Any] = {
    ItemKind.FOLDER: FolderRow,
    ItemKind.FILE: FileRow,
}

# Item field -> column name, where they differ.
_COLUMN_NAMES: dict[str, str] = {
    "owner_id": "user_id",
    "parent_id": "parent_folder_id",
    "starred": "is_starred",
    "trashed": "is_trashed",
    "mime_type": "file_type",
    "size_bytes": "size",
    "blob_ref": "file_path",
}

_COMMON_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "owner_id",
    "parent_id",
    "starred",
    "trashed",
    "shared",
    "trashed_at",
    "trash_root_id",
    "created_at",
    "updated_at",
)

_FILE_FIELDS: tuple[str, ...] = ("mime_type", "size_bytes", "blob_ref")


def _column(field_name: str) -> str:
    return _COLUMN_NAMES.get(field_name, field_name)


def _fields_for(kind: ItemKind) -> tuple[str, ...]:
    if kind is ItemKind.FILE:
        return _COMMON_FIELDS + _FILE_FIELDS
    return _COMMON_FIELDS


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_item(kind: ItemKind, row: Any) -> Item:
    values = {name: getattr(row, _column(name)) for name in _fields_for(kind)}
    for stamp in ("created_at", "updated_at", "trashed_at"):
        if values[stamp] is not None:
            values[stamp] = ensure_utc(values[stamp])
    if kind is ItemKind.FILE and values["size_bytes"] is None:
        values["size_bytes"] = 0
    return Item(kind=kind, **values)


def _row_to_grant(row: SharedFileRow) -> ShareGrant:
    return ShareGrant(
        id=row.id,
        file_id=row.file_id,
        shared_by=row.shared_by,
        shared_with=row.shared_with,
        access_level=AccessLevel(row.access_level),
        expires_at=ensure_utc(row.expires_at) if row.expires_at is not None else None,
        created_at=ensure_utc(row.created_at),
    )


class SqlItemStore(ItemStore):
    """
    ItemStore over three relational tables: folders, files, shared_files.

    Any SQLAlchemy failure is surfaced as StoreUnavailableError; nothing is
    retried.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        timeout: float = 30.0,
        create_tables: bool = True,
        echo: bool = False,
    ) -> SqlItemStore:
        """Create an engine for url (and the tables, unless disabled)."""
        url_obj = make_url(url)
        kwargs: dict[str, Any] = {"echo": echo}
        if url_obj.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
            if url_obj.database in (None, "", ":memory:"):
                # One shared connection, otherwise every checkout sees a new database.
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_timeout"] = timeout
            kwargs["pool_pre_ping"] = True

        try:
            engine = create_engine(url_obj, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                "Failed to create database engine",
                details={"backend": url_obj.get_backend_name()},
                cause=exc,
            ) from exc

        store = cls(engine)
        if create_tables:
            store.create_tables()
        return store

    def create_tables(self) -> None:
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("Failed to create tables", cause=exc) from exc

    def dispose(self) -> None:
        self._engine.dispose()

    # ----------------------------
    # Items
    # ----------------------------
    def insert(self, item: Item) -> Item:
        row_cls = _ROW_CLASSES[item.kind]
        values = {_column(name): getattr(item, name) for name in _fields_for(item.kind)}
        with self._session("insert") as session:
            session.add(row_cls(**values))
        return item.with_changes()

    def get(self, kind: ItemKind, item_id: str, owner_id: str) -> Optional[Item]:
        row_cls = _ROW_CLASSES[kind]
        with self._session("get") as session:
            row = session.scalars(
                select(row_cls).where(row_cls.id == item_id, row_cls.user_id == owner_id)
            ).first()
            return _row_to_item(kind, row) if row is not None else None

    def update(self, kind: ItemKind, item_id: str, owner_id: str, **fields: Any) -> Item:
        check_updatable(fields)
        row_cls = _ROW_CLASSES[kind]
        with self._session("update") as session:
            row = session.scalars(
                select(row_cls).where(row_cls.id == item_id, row_cls.user_id == owner_id)
            ).first()
            if row is None:
                raise NotFoundError(
                    f"{kind.value.capitalize()} not found: {item_id}",
                    details={"kind": kind.value, "id": item_id},
                )
            for name, value in fields.items():
                setattr(row, _column(name), value)
            session.flush()
            return _row_to_item(kind, row)

    def delete(self, kind: ItemKind, item_id: str, owner_id: str) -> None:
        row_cls = _ROW_CLASSES[kind]
        with self._session("delete") as session:
            session.execute(
                delete(row_cls).where(row_cls.id == item_id, row_cls.user_id == owner_id)
            )

    def query(self, kind: ItemKind, query: ItemQuery) -> list[Item]:
        row_cls = _ROW_CLASSES[kind]
        stmt = select(row_cls).where(row_cls.user_id == query.owner_id)

        for name, expected in query.equality_filters().items():
            column = getattr(row_cls, _column(name))
            stmt = stmt.where(column.is_(None) if expected is None else column == expected)

        if query.name_ilike is not None:
            pattern = f"%{_escape_like(query.name_ilike)}%"
            stmt = stmt.where(row_cls.name.ilike(pattern, escape="\\"))

        if query.order_by is not None:
            column = getattr(row_cls, _column(query.order_by))
            stmt = stmt.order_by(column.desc() if query.descending else column.asc())
        stmt = stmt.order_by(row_cls.row_id.asc())

        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        with self._session("query") as session:
            return [_row_to_item(kind, row) for row in session.scalars(stmt)]

    # ----------------------------
    # Share grants
    # ----------------------------
    def insert_share(self, grant: ShareGrant) -> ShareGrant:
        with self._session("insert_share") as session:
            session.add(
                SharedFileRow(
                    id=grant.id,
                    file_id=grant.file_id,
                    shared_by=grant.shared_by,
                    shared_with=grant.shared_with,
                    access_level=grant.access_level.value,
                    expires_at=grant.expires_at,
                    created_at=grant.created_at,
                )
            )
        return grant

    def get_share(self, grant_id: str) -> Optional[ShareGrant]:
        with self._session("get_share") as session:
            row = session.scalars(
                select(SharedFileRow).where(SharedFileRow.id == grant_id)
            ).first()
            return _row_to_grant(row) if row is not None else None

    def list_shares(self, file_id: str) -> list[ShareGrant]:
        stmt = (
            select(SharedFileRow)
            .where(SharedFileRow.file_id == file_id)
            .order_by(SharedFileRow.row_id.asc())
        )
        with self._session("list_shares") as session:
            return [_row_to_grant(row) for row in session.scalars(stmt)]

    def delete_share(self, grant_id: str) -> None:
        with self._session("delete_share") as session:
            session.execute(delete(SharedFileRow).where(SharedFileRow.id == grant_id))

    def delete_shares_for_file(self, file_id: str) -> int:
        with self._session("delete_shares_for_file") as session:
            result = session.execute(
                delete(SharedFileRow).where(SharedFileRow.file_id == file_id)
            )
            return int(result.rowcount or 0)

    # ----------------------------
    # Internals
    # ----------------------------
    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Open a session in a transaction; commit on success, map DB errors."""
        try:
            with self._sessions() as session, session.begin():
                yield session
        except SQLAlchemyError as exc:
            logger.error("Item store %s failed: %s", operation, exc)
            raise StoreUnavailableError(
                f"Item store {operation} failed",
                details={"operation": operation},
                cause=exc,
            ) from exc
