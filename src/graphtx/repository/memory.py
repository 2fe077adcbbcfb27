from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, FrozenSet, Iterable, List, Optional, Set
from urllib.parse import urlparse

from rdflib import Graph
from rdflib.term import Identifier, Node

from graphtx.exception import RepositoryError

from .base import Isolation, Repository, RepositoryConnection, Triple

logger = logging.getLogger(__name__)

SNAPSHOT_LEVELS = (Isolation.SNAPSHOT, Isolation.SERIALIZABLE)


class MemoryRepository(Repository):
    """In-memory repository backed by an `rdflib.Graph`.

    Connections stage their changes and apply them atomically on commit.
    With `SNAPSHOT` or `SERIALIZABLE` isolation, a connection reads from a
    copy of the graph taken when its transaction began; a `SERIALIZABLE`
    commit fails if another commit landed in the meantime.

    Example:

    ```python
    repository = MemoryRepository("people")
    connection = await repository.get_connection()
    ```
    """

    scheme = "memory"

    def __init__(
        self,
        name: str = "",
        *,
        supported_isolation_levels: Optional[Iterable[Isolation]] = None,
        default_isolation_level: Isolation = Isolation.SNAPSHOT_READ,
    ) -> None:
        super().__init__()
        supported = (
            frozenset(Isolation)
            if supported_isolation_levels is None
            else frozenset(supported_isolation_levels)
        )
        self._name = name
        self._supported_isolation_levels = supported | {
            default_isolation_level
        }
        self._default_isolation_level = default_isolation_level
        self._graph = Graph()
        self._lock = Lock()
        self._version = 0

    @classmethod
    def from_dsn(cls, dsn: str) -> MemoryRepository:
        parts = urlparse(dsn)
        return cls(parts.netloc + parts.path)

    @property
    def dsn(self) -> str:
        return f"{self.scheme}://{self._name}"

    @property
    def supported_isolation_levels(self) -> FrozenSet[Isolation]:
        return self._supported_isolation_levels

    @property
    def default_isolation_level(self) -> Isolation:
        return self._default_isolation_level

    async def _setup(self) -> None:
        logger.debug("Initialized %s", self)

    async def _teardown(self) -> None:
        with self._lock:
            self._graph = Graph()
            self._version = 0
        logger.debug("Shut down %s", self)

    async def _open_connection(self) -> MemoryRepositoryConnection:
        return MemoryRepositoryConnection(self)

    def _snapshot(self) -> Graph:
        snapshot = Graph()
        with self._lock:
            snapshot += self._graph
        return snapshot

    def _apply(
        self,
        added: Set[Triple],
        removed: Set[Triple],
        expected_version: Optional[int] = None,
    ) -> None:
        with self._lock:
            if (
                expected_version is not None
                and expected_version != self._version
            ):
                raise RepositoryError(
                    f"Concurrent modification of {self} detected"
                )
            for triple in removed:
                self._graph.remove(triple)
            for triple in added:
                self._graph.add(triple)
            self._version += 1


class MemoryRepositoryConnection(RepositoryConnection):
    _repository: MemoryRepository

    def __init__(self, repository: MemoryRepository) -> None:
        super().__init__(repository)
        self._open = True
        self._active = False
        self._added: Set[Triple] = set()
        self._removed: Set[Triple] = set()
        self._snapshot: Optional[Graph] = None
        self._version: Optional[int] = None
        self._level: Optional[Isolation] = None

    def is_open(self) -> bool:
        return self._open

    def is_active(self) -> bool:
        return self._active

    async def begin(self) -> None:
        self._check_open()
        if self._active:
            raise RepositoryError(f"Connection {self} already in transaction")

        level = (
            self.isolation_level or self._repository.default_isolation_level
        )
        self._level = level
        if level in SNAPSHOT_LEVELS:
            self._version = self._repository._version
            self._snapshot = self._repository._snapshot()
        self._active = True

    async def commit(self) -> None:
        self._check_active()
        expected_version = (
            self._version if self._level is Isolation.SERIALIZABLE else None
        )
        try:
            self._repository._apply(
                self._added, self._removed, expected_version
            )
        finally:
            self._reset()

    async def rollback(self) -> None:
        self._check_active()
        self._reset()

    async def close(self) -> None:
        if not self._open:
            return
        if self._active:
            logger.warning(
                "Rolling back uncommitted changes while closing %s", self
            )
            self._reset()
        self._open = False

    async def add(self, subject: Node, predicate: Node, obj: Node) -> None:
        self._check_open()
        triple = (subject, predicate, obj)
        if not self._active:
            self._repository._apply({triple}, set())
            return
        self._removed.discard(triple)
        self._added.add(triple)

    async def remove(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        obj: Optional[Node] = None,
    ) -> None:
        matches = set(await self.statements(subject, predicate, obj))
        if not self._active:
            self._repository._apply(set(), matches)
            return
        self._added -= matches
        self._removed |= matches

    async def statements(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        obj: Optional[Node] = None,
    ) -> List[Triple]:
        return list(self._view().triples((subject, predicate, obj)))

    async def select(self, query: str) -> List[Dict[str, Identifier]]:
        result = self._view().query(query)
        if result.type != "SELECT":
            raise RepositoryError(f"Not a SELECT query: {query}")
        return [
            {str(name): value for name, value in row.asdict().items()}
            for row in result
        ]

    async def ask(self, query: str) -> bool:
        result = self._view().query(query)
        if result.type != "ASK":
            raise RepositoryError(f"Not an ASK query: {query}")
        return bool(result.askAnswer)

    def _view(self) -> Graph:
        self._check_open()
        if self._snapshot is not None:
            view = Graph()
            view += self._snapshot
        else:
            view = self._repository._snapshot()
        for triple in self._removed:
            view.remove(triple)
        for triple in self._added:
            view.add(triple)
        return view

    def _check_active(self) -> None:
        self._check_open()
        if not self._active:
            raise RepositoryError(f"Connection {self} not in transaction")

    def _reset(self) -> None:
        self._active = False
        self._level = None
        self._added.clear()
        self._removed.clear()
        self._snapshot = None
        self._version = None
