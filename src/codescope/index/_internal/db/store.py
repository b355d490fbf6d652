"""Persistent store for files, symbols, embeddings and dependencies.

The store is the single read/write path to the index database. All
mutations go through Database.immediate_transaction, so writers are
serialized, and multi-table reads go through Database.read_snapshot, so
readers see one consistent state.

The per-file unit is replace_file(): upsert the File row, then clear and
reinsert its symbols, dependencies and embeddings, all in one transaction.
Readers observe either the previous version of a file or the new one,
never a mix.
"""

from __future__ import annotations

import time
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
from sqlalchemy import delete, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from codescope.core.errors import StorageError, UninitializedStoreError
from codescope.index._internal.db.database import Database
from codescope.index._internal.db.indexes import create_additional_indexes
from codescope.index.models import Dependency, Embedding, File, Symbol

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class FileUpsert:
    """Attributes written to the File row on upsert."""

    path: str
    content: str
    hash: str
    size: int
    language: str
    last_modified: float


@dataclass(slots=True)
class PendingEmbedding:
    """Embedding row whose symbol is referenced by position in the batch.

    symbol_position indexes the symbols list passed alongside it to
    replace_file(); the real symbol id is only known after insert.
    """

    embedding: Embedding
    symbol_position: int | None = None


@dataclass
class FileSnapshot:
    """A file and everything it owns, read in a single transaction."""

    file: File
    symbols: list[Symbol] = field(default_factory=list)
    embeddings: list[Embedding] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)


class IndexStore:
    """Durable storage for the code index.

    Usage::

        store = IndexStore(repo / ".codescope" / "index.db")
        store.open()
        file = store.get_file("src/app.py")
        store.close()
    """

    def __init__(
        self,
        db_path: Path,
        *,
        max_retries: int = 3,
        busy_timeout_ms: int = 30000,
        retry_base_delay: float = 0.1,
    ) -> None:
        self.db_path = db_path
        self._max_retries = max_retries
        self._busy_timeout_ms = busy_timeout_ms
        self._retry_base_delay = retry_base_delay
        self._db: Database | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_open(self) -> bool:
        return self._db is not None

    def open(self) -> None:
        """Create the database file and schema if needed."""
        if self._db is not None:
            return
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            db = Database(
                self.db_path,
                max_retries=self._max_retries,
                retry_base_delay=self._retry_base_delay,
                busy_timeout_ms=self._busy_timeout_ms,
            )
            db.create_all()
            create_additional_indexes(db.engine)
        except (OSError, SQLAlchemyError) as e:
            raise StorageError.operation_failed("open", str(e), str(self.db_path)) from e
        self._db = db
        logger.info("store_opened", db_path=str(self.db_path))

    def close(self) -> None:
        if self._db is None:
            return
        try:
            self._db.checkpoint()
        except SQLAlchemyError as e:
            logger.warning("wal_checkpoint_failed", db_path=str(self.db_path), error=str(e))
        self._db.dispose()
        self._db = None
        logger.info("store_closed", db_path=str(self.db_path))

    def _require_db(self, operation: str) -> Database:
        if self._db is None:
            raise UninitializedStoreError.for_operation(operation)
        return self._db

    @contextmanager
    def _writing(self, operation: str, path: str | None = None) -> Generator[Session, None, None]:
        db = self._require_db(operation)
        try:
            with db.immediate_transaction() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageError.operation_failed(operation, str(e), path) from e

    @contextmanager
    def _reading(self, operation: str, path: str | None = None) -> Generator[Session, None, None]:
        db = self._require_db(operation)
        try:
            with db.read_snapshot() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageError.operation_failed(operation, str(e), path) from e

    # =========================================================================
    # Files
    # =========================================================================

    def upsert_file(self, record: FileUpsert) -> File:
        """Insert or replace the File row keyed by path."""
        with self._writing("upsert_file", record.path) as session:
            return _upsert_file(session, record)

    def get_file(self, path: str) -> File | None:
        with self._reading("get_file", path) as session:
            return session.exec(select(File).where(File.path == path)).first()

    def get_file_by_id(self, file_id: int) -> File | None:
        with self._reading("get_file_by_id") as session:
            return session.get(File, file_id)

    def get_files_by_ids(self, file_ids: Iterable[int]) -> dict[int, File]:
        ids = list(set(file_ids))
        if not ids:
            return {}
        with self._reading("get_files_by_ids") as session:
            rows = session.exec(select(File).where(col(File.id).in_(ids))).all()
        return {row.id: row for row in rows if row.id is not None}

    def list_files(self) -> list[File]:
        with self._reading("list_files") as session:
            return list(session.exec(select(File).order_by(File.path)).all())

    def indexed_paths(self) -> list[str]:
        with self._reading("indexed_paths") as session:
            return list(session.exec(select(File.path).order_by(File.path)).all())

    def delete_file(self, path: str) -> bool:
        """Delete a file and, by cascade, everything it owns."""
        with self._writing("delete_file", path) as session:
            result = session.execute(delete(File).where(col(File.path) == path))
            deleted = (result.rowcount or 0) > 0  # type: ignore[attr-defined]
        if deleted:
            logger.debug("file_deleted", path=path)
        return deleted

    def replace_file(
        self,
        record: FileUpsert,
        symbols: list[Symbol],
        dependencies: list[Dependency],
        embeddings: list[PendingEmbedding],
    ) -> File:
        """Upsert a file and replace all of its derived rows atomically."""
        with self._writing("replace_file", record.path) as session:
            file = _upsert_file(session, record)
            file_id = file.id
            assert file_id is not None

            _clear_owned(session, file_id)

            for symbol in symbols:
                symbol.file_id = file_id
                session.add(symbol)
            session.flush()

            for dep in dependencies:
                dep.source_file_id = file_id
                session.add(dep)

            for pending in embeddings:
                emb = pending.embedding
                emb.file_id = file_id
                if pending.symbol_position is not None:
                    emb.symbol_id = symbols[pending.symbol_position].id
                session.add(emb)
            session.flush()
        return file

    # =========================================================================
    # Symbols
    # =========================================================================

    def insert_symbol(self, symbol: Symbol) -> Symbol:
        with self._writing("insert_symbol") as session:
            session.add(symbol)
            session.flush()
        return symbol

    def symbols_of(self, file_id: int) -> list[Symbol]:
        with self._reading("symbols_of") as session:
            stmt = (
                select(Symbol)
                .where(Symbol.file_id == file_id)
                .order_by(Symbol.start_line, Symbol.id)  # type: ignore[arg-type]
            )
            return list(session.exec(stmt).all())

    def find_symbols_by_name(self, name: str, kind: str | None = None) -> list[Symbol]:
        with self._reading("find_symbols_by_name") as session:
            stmt = select(Symbol).where(Symbol.name == name)
            if kind is not None:
                stmt = stmt.where(Symbol.kind == kind)
            stmt = stmt.order_by(Symbol.file_id, Symbol.start_line)  # type: ignore[arg-type]
            return list(session.exec(stmt).all())

    def clear_symbols_of(self, file_id: int) -> int:
        with self._writing("clear_symbols_of") as session:
            result = session.execute(delete(Symbol).where(col(Symbol.file_id) == file_id))
            return result.rowcount or 0  # type: ignore[attr-defined]

    # =========================================================================
    # Embeddings
    # =========================================================================

    def insert_embedding(self, embedding: Embedding) -> Embedding:
        with self._writing("insert_embedding") as session:
            session.add(embedding)
            session.flush()
        return embedding

    def embeddings_of(self, file_id: int) -> list[Embedding]:
        with self._reading("embeddings_of") as session:
            stmt = (
                select(Embedding)
                .where(Embedding.file_id == file_id)
                .order_by(Embedding.chunk_index)  # type: ignore[arg-type]
            )
            return list(session.exec(stmt).all())

    def all_embeddings(self) -> list[Embedding]:
        with self._reading("all_embeddings") as session:
            stmt = select(Embedding).order_by(
                Embedding.file_id,  # type: ignore[arg-type]
                Embedding.chunk_index,  # type: ignore[arg-type]
            )
            return list(session.exec(stmt).all())

    def clear_embeddings_of(self, file_id: int) -> int:
        with self._writing("clear_embeddings_of") as session:
            result = session.execute(delete(Embedding).where(col(Embedding.file_id) == file_id))
            return result.rowcount or 0  # type: ignore[attr-defined]

    # =========================================================================
    # Dependencies
    # =========================================================================

    def insert_dependency(self, dependency: Dependency) -> Dependency:
        with self._writing("insert_dependency") as session:
            session.add(dependency)
            session.flush()
        return dependency

    def dependencies_of(self, file_id: int) -> list[Dependency]:
        with self._reading("dependencies_of") as session:
            stmt = (
                select(Dependency)
                .where(Dependency.source_file_id == file_id)
                .order_by(Dependency.id)  # type: ignore[arg-type]
            )
            return list(session.exec(stmt).all())

    def dependents_of(self, file_id: int) -> list[Dependency]:
        """Dependencies in other files whose resolved target is this file."""
        with self._reading("dependents_of") as session:
            stmt = (
                select(Dependency)
                .where(Dependency.target_file_id == file_id)
                .order_by(Dependency.source_file_id, Dependency.id)  # type: ignore[arg-type]
            )
            return list(session.exec(stmt).all())

    def clear_dependencies_of(self, file_id: int) -> int:
        with self._writing("clear_dependencies_of") as session:
            result = session.execute(
                delete(Dependency).where(col(Dependency.source_file_id) == file_id)
            )
            return result.rowcount or 0  # type: ignore[attr-defined]

    def unresolved_dependencies(
        self, *, include_external_for: Iterable[str] = ()
    ) -> list[tuple[Dependency, str, str]]:
        """Dependencies without a target, with their source path and language.

        Only local dependencies are returned, plus external ones from source
        files in include_external_for (languages whose absolute imports may
        still name a repository file).
        """
        languages = list(include_external_for)
        with self._reading("unresolved_dependencies") as session:
            stmt = (
                select(Dependency, File.path, File.language)
                .join(File, col(File.id) == col(Dependency.source_file_id))
                .where(col(Dependency.target_file_id).is_(None))
                .where(
                    or_(
                        col(Dependency.is_external).is_(False),
                        col(File.language).in_(languages),
                    )
                )
            )
            return [(dep, path, language) for dep, path, language in session.exec(stmt).all()]

    def set_dependency_targets(self, targets: dict[int, int]) -> int:
        """Point dependencies (by id) at resolved target files (by id) and mark them local."""
        if not targets:
            return 0
        with self._writing("set_dependency_targets") as session:
            for dep_id, target_id in targets.items():
                session.execute(
                    update(Dependency)
                    .where(col(Dependency.id) == dep_id)
                    .values(target_file_id=target_id, is_external=False)
                )
        return len(targets)

    # =========================================================================
    # Snapshots
    # =========================================================================

    def file_snapshot(self, path: str) -> FileSnapshot | None:
        """Read a file with all of its owned rows from one snapshot."""
        with self._reading("file_snapshot", path) as session:
            file = session.exec(select(File).where(File.path == path)).first()
            if file is None or file.id is None:
                return None
            return FileSnapshot(
                file=file,
                symbols=list(
                    session.exec(
                        select(Symbol)
                        .where(Symbol.file_id == file.id)
                        .order_by(Symbol.start_line, Symbol.id)  # type: ignore[arg-type]
                    ).all()
                ),
                embeddings=list(
                    session.exec(
                        select(Embedding)
                        .where(Embedding.file_id == file.id)
                        .order_by(Embedding.chunk_index)  # type: ignore[arg-type]
                    ).all()
                ),
                dependencies=list(
                    session.exec(
                        select(Dependency)
                        .where(Dependency.source_file_id == file.id)
                        .order_by(Dependency.id)  # type: ignore[arg-type]
                    ).all()
                ),
            )

    def stats(self) -> dict[str, Any]:
        """Row counts per table."""
        with self._reading("stats") as session:
            counts = {
                name: session.exec(select(func.count()).select_from(model)).one()
                for name, model in (
                    ("files", File),
                    ("symbols", Symbol),
                    ("embeddings", Embedding),
                    ("dependencies", Dependency),
                )
            }
        return counts


def _upsert_file(session: Session, record: FileUpsert) -> File:
    file = session.exec(select(File).where(File.path == record.path)).first()
    now = time.time()
    if file is None:
        file = File(
            path=record.path,
            content=record.content,
            hash=record.hash,
            size=record.size,
            language=record.language,
            last_modified=record.last_modified,
            indexed_at=now,
        )
    else:
        file.content = record.content
        file.hash = record.hash
        file.size = record.size
        file.language = record.language
        file.last_modified = record.last_modified
        file.indexed_at = now
    session.add(file)
    session.flush()
    return file


def _clear_owned(session: Session, file_id: int) -> None:
    session.execute(delete(Embedding).where(col(Embedding.file_id) == file_id))
    session.execute(delete(Dependency).where(col(Dependency.source_file_id) == file_id))
    session.execute(delete(Symbol).where(col(Symbol.file_id) == file_id))
