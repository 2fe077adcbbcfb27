from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import aiosqlite
from rdflib import Graph
from rdflib.term import Identifier, Node
from rdflib.util import from_n3

from graphtx.exception import RepositoryError

from .base import Repository, RepositoryConnection, Triple

logger = logging.getLogger(__name__)

CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS triples (
    subject TEXT NOT NULL,
    predicate TEXT NOT NULL,
    object TEXT NOT NULL,
    PRIMARY KEY (subject, predicate, object)
)
"""
COLUMNS = ("subject", "predicate", "object")


class SQLiteRepository(Repository):
    """Repository persisted in a SQLite database.

    Every connection opens its own database connection and uses explicit
    `BEGIN`, `COMMIT` and `ROLLBACK` statements. Isolation is whatever
    SQLite provides, connections cannot choose a level.
    """

    scheme = "sqlite"

    def __init__(self, db_path: str) -> None:
        super().__init__()
        self._db_path = db_path

    @classmethod
    def from_dsn(cls, dsn: str) -> SQLiteRepository:
        parts = urlparse(dsn)
        return cls(parts.netloc + parts.path)

    @property
    def dsn(self) -> str:
        return f"{self.scheme}://{self._db_path}"

    @property
    def db_path(self) -> str:
        return self._db_path

    async def _setup(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_TABLE)
            await db.commit()
        logger.debug("Initialized %s", self)

    async def _teardown(self) -> None:
        logger.debug("Shut down %s", self)

    async def _open_connection(self) -> SQLiteRepositoryConnection:
        db = await aiosqlite.connect(self._db_path, isolation_level=None)
        return SQLiteRepositoryConnection(self, db)


class SQLiteRepositoryConnection(RepositoryConnection):
    def __init__(
        self, repository: SQLiteRepository, db: aiosqlite.Connection
    ) -> None:
        super().__init__(repository)
        self._db = db
        self._open = True
        self._active = False

    def is_open(self) -> bool:
        return self._open

    def is_active(self) -> bool:
        return self._active

    async def begin(self) -> None:
        self._check_open()
        if self._active:
            raise RepositoryError(f"Connection {self} already in transaction")
        await self._run("BEGIN")
        self._active = True

    async def commit(self) -> None:
        self._check_active()
        try:
            await self._run("COMMIT")
        finally:
            self._active = False

    async def rollback(self) -> None:
        self._check_active()
        try:
            await self._run("ROLLBACK")
        finally:
            self._active = False

    async def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self._active = False
        try:
            await self._db.close()
        except Exception as e:
            raise RepositoryError(f"Cannot close {self}: {e}") from e

    async def add(self, subject: Node, predicate: Node, obj: Node) -> None:
        await self._run(
            "INSERT OR IGNORE INTO triples (subject, predicate, object) "
            "VALUES (?, ?, ?)",
            (subject.n3(), predicate.n3(), obj.n3()),
        )

    async def remove(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        obj: Optional[Node] = None,
    ) -> None:
        where, params = self._pattern(subject, predicate, obj)
        await self._run(f"DELETE FROM triples{where}", params)

    async def statements(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        obj: Optional[Node] = None,
    ) -> List[Triple]:
        self._check_open()
        where, params = self._pattern(subject, predicate, obj)
        try:
            async with self._db.execute(
                f"SELECT subject, predicate, object FROM triples{where}",
                params,
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            raise RepositoryError(f"Cannot read from {self}: {e}") from e
        return [
            (from_n3(subject), from_n3(predicate), from_n3(obj))
            for subject, predicate, obj in rows
        ]

    async def size(self) -> int:
        self._check_open()
        try:
            async with self._db.execute(
                "SELECT COUNT(*) FROM triples"
            ) as cursor:
                (count,) = await cursor.fetchone()
        except Exception as e:
            raise RepositoryError(f"Cannot read from {self}: {e}") from e
        return count

    async def select(self, query: str) -> List[Dict[str, Identifier]]:
        result = (await self._graph()).query(query)
        if result.type != "SELECT":
            raise RepositoryError(f"Not a SELECT query: {query}")
        return [
            {str(name): value for name, value in row.asdict().items()}
            for row in result
        ]

    async def ask(self, query: str) -> bool:
        result = (await self._graph()).query(query)
        if result.type != "ASK":
            raise RepositoryError(f"Not an ASK query: {query}")
        return bool(result.askAnswer)

    async def _graph(self) -> Graph:
        # SPARQL is evaluated by rdflib over everything this connection sees
        graph = Graph()
        for triple in await self.statements():
            graph.add(triple)
        return graph

    async def _run(self, sql: str, params: Tuple[Any, ...] = ()) -> None:
        self._check_open()
        try:
            await self._db.execute(sql, params)
        except Exception as e:
            raise RepositoryError(f"Failed to execute {sql!r}: {e}") from e

    def _check_active(self) -> None:
        self._check_open()
        if not self._active:
            raise RepositoryError(f"Connection {self} not in transaction")

    @staticmethod
    def _pattern(
        subject: Optional[Node],
        predicate: Optional[Node],
        obj: Optional[Node],
    ) -> Tuple[str, Tuple[str, ...]]:
        clauses = []
        params = []
        for column, term in zip(COLUMNS, (subject, predicate, obj)):
            if term is not None:
                clauses.append(f"{column} = ?")
                params.append(term.n3())
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, tuple(params)
