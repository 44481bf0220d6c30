"""SQLite store of completed photobooth sessions."""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from sqlalchemy import (
    Column,
    Index,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    inspect,
    insert,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from photobooth.exceptions import RecordStoreError
from photobooth.models.session import PhotoResultRecord, Selection, UserInfo

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

metadata = MetaData()

photo_results = Table(
    "photo_results",
    metadata,
    Column("id", String, primary_key=True),
    Column("photo_path", Text, nullable=False),
    Column("selected_theme", Text, nullable=False, server_default="{}"),
    Column("user_info", Text, nullable=False, server_default="{}"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    Index("idx_photo_results_created_at", "created_at"),
    Index("idx_photo_results_photo_path", "photo_path"),
)

# Columns added after the first schema, with the DDL used to add them in place
ADDITIVE_COLUMNS = {
    "photo_path": "TEXT NOT NULL DEFAULT ''",
    "selected_theme": "TEXT NOT NULL DEFAULT '{}'",
    "user_info": "TEXT NOT NULL DEFAULT '{}'",
    "created_at": "TEXT NOT NULL DEFAULT ''",
    "updated_at": "TEXT NOT NULL DEFAULT ''",
}


EMPTY_USER_INFO = {"name": "", "email": "", "phone": ""}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_record(photo_path: str, selection: Selection, user_info: UserInfo) -> PhotoResultRecord:
    now = utc_now()
    return PhotoResultRecord(
        id=str(uuid.uuid4()),
        photo_path=photo_path,
        selection=selection,
        user_info=user_info,
        created_at=now,
        updated_at=now,
    )


class RecordStore:
    def __init__(self, database_path: Union[str, Path]):
        self.database_path = Path(database_path)
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            # Calls arrive from worker threads as well as the event loop
            engine = create_engine(
                f"sqlite:///{self.database_path}",
                connect_args={"check_same_thread": False},
            )
            try:
                self.migrate(engine)
            except SQLAlchemyError as e:
                engine.dispose()
                raise RecordStoreError(f"Failed to open database: {e}") from e
            self._engine = engine
        return self._engine

    @staticmethod
    def migrate(engine: Engine) -> None:
        """Bring an existing database up to the current schema without losing rows."""
        with engine.begin() as conn:
            version = conn.execute(text("PRAGMA user_version")).scalar() or 0
            existing = set(inspect(conn).get_table_names())

            if photo_results.name not in existing:
                metadata.create_all(conn)
            else:
                columns = {c["name"] for c in inspect(conn).get_columns(photo_results.name)}
                for name, ddl in ADDITIVE_COLUMNS.items():
                    if name not in columns:
                        logger.info("Adding column %s to %s", name, photo_results.name)
                        conn.execute(text(f"ALTER TABLE {photo_results.name} ADD COLUMN {name} {ddl}"))

                # Older builds stored the archetype result in quiz_result
                if "quiz_result" in columns and "selected_theme" not in columns:
                    conn.execute(text(
                        f"UPDATE {photo_results.name} SET selected_theme = quiz_result "
                        "WHERE quiz_result IS NOT NULL"
                    ))

                for index in photo_results.indexes:
                    index.create(conn, checkfirst=True)

            if version < SCHEMA_VERSION:
                conn.execute(text(f"PRAGMA user_version = {SCHEMA_VERSION}"))
                logger.info("Database schema at version %d", SCHEMA_VERSION)

    def save(self, record: PhotoResultRecord) -> None:
        stmt = insert(photo_results).prefix_with("OR REPLACE").values(
            id=record.id,
            photo_path=record.photo_path,
            selected_theme=record.selection.model_dump_json() if record.selection else "{}",
            user_info=record.user_info.model_dump_json(),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to save photo result: {e}") from e

    def get_all(self) -> List[PhotoResultRecord]:
        stmt = select(photo_results).order_by(photo_results.c.created_at.desc())
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to get photo results: {e}") from e
        records = []
        for row in rows:
            try:
                records.append(self._to_record(row))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping unreadable photo result %s: %s", row["id"], e)
        return records

    def get_by_id(self, record_id: str) -> Optional[PhotoResultRecord]:
        stmt = select(photo_results).where(photo_results.c.id == record_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to get photo result: {e}") from e
        if row is None:
            return None
        try:
            return self._to_record(row)
        except (ValueError, TypeError) as e:
            raise RecordStoreError(f"Photo result {record_id} is unreadable: {e}") from e

    @staticmethod
    def _to_record(row) -> PhotoResultRecord:
        return PhotoResultRecord(
            id=row["id"],
            photo_path=row["photo_path"],
            # Rows migrated from older schemas may carry empty JSON objects
            selection=json.loads(row["selected_theme"] or "{}") or None,
            user_info={**EMPTY_USER_INFO, **json.loads(row["user_info"] or "{}")},
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
