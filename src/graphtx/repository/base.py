from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Protocol,
    Set,
    Tuple,
    Type,
    runtime_checkable,
)
from urllib.parse import urlparse

from graphtx.exception import RepositoryConfigError, RepositoryError

if TYPE_CHECKING:
    from rdflib.term import Identifier, Node

Triple = Tuple["Node", "Node", "Node"]


class Isolation(Enum):
    """Isolation levels implemented by repositories"""

    NONE = "NONE"
    READ_UNCOMMITTED = "READ_UNCOMMITTED"
    READ_COMMITTED = "READ_COMMITTED"
    SNAPSHOT_READ = "SNAPSHOT_READ"
    SNAPSHOT = "SNAPSHOT"
    SERIALIZABLE = "SERIALIZABLE"


@runtime_checkable
class IsolationSupport(Protocol):
    """Repositories that let a connection choose its isolation level"""

    @property
    def supported_isolation_levels(self) -> FrozenSet[Isolation]: ...

    @property
    def default_isolation_level(self) -> Isolation: ...


class Repository(ABC):
    scheme = "dummy"
    registered_repositories: Set[Type[Repository]] = set()

    def __init_subclass__(cls) -> None:
        Repository.registered_repositories.add(cls)

    def __init__(self) -> None:
        self._initialized = False

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.dsn}>"

    @classmethod
    @abstractmethod
    def from_dsn(cls, dsn: str) -> Repository: ...

    @property
    @abstractmethod
    def dsn(self) -> str: ...

    @abstractmethod
    async def _setup(self) -> None: ...

    @abstractmethod
    async def _teardown(self) -> None: ...

    @abstractmethod
    async def _open_connection(self) -> RepositoryConnection: ...

    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Prepare the repository for use"""
        if self._initialized:
            return
        try:
            await self._setup()
        except RepositoryError:
            raise
        except Exception as e:
            raise RepositoryError(f"Cannot initialize {self}: {e}") from e
        self._initialized = True

    async def shutdown(self) -> None:
        """Release all resources held by the repository"""
        if not self._initialized:
            return
        self._initialized = False
        await self._teardown()

    async def get_connection(self) -> RepositoryConnection:
        """Open a new connection to the repository, initializing the
        repository first if needed

        Raises:
            RepositoryError: If no connection can be opened

        Returns:
            RepositoryConnection: A new, open connection
        """
        await self.initialize()
        try:
            return await self._open_connection()
        except RepositoryError:
            raise
        except Exception as e:
            raise RepositoryError(
                f"Cannot open connection to {self}: {e}"
            ) from e


class RepositoryConnection(ABC):
    """A connection to a repository.

    Changes made while no transaction is active are committed immediately.
    """

    def __init__(self, repository: Repository) -> None:
        self._repository = repository
        self._isolation_level: Optional[Isolation] = None

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self._repository.dsn}>"

    @property
    def repository(self) -> Repository:
        return self._repository

    @property
    def isolation_level(self) -> Optional[Isolation]:
        return self._isolation_level

    @isolation_level.setter
    def isolation_level(self, level: Optional[Isolation]) -> None:
        if self.is_active():
            raise RepositoryError(
                "Cannot change isolation level during a transaction"
            )
        self._isolation_level = level

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def is_active(self) -> bool: ...

    @abstractmethod
    async def begin(self) -> None: ...

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def add(
        self, subject: Node, predicate: Node, obj: Node
    ) -> None: ...

    @abstractmethod
    async def remove(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        obj: Optional[Node] = None,
    ) -> None: ...

    @abstractmethod
    async def statements(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        obj: Optional[Node] = None,
    ) -> List[Triple]: ...

    @abstractmethod
    async def select(self, query: str) -> List[Dict[str, Identifier]]: ...

    @abstractmethod
    async def ask(self, query: str) -> bool: ...

    async def size(self) -> int:
        return len(await self.statements())

    async def add_all(self, triples: Iterable[Triple]) -> None:
        for subject, predicate, obj in triples:
            await self.add(subject, predicate, obj)

    def _check_open(self) -> None:
        if not self.is_open():
            raise RepositoryError(f"Connection {self} is closed")


def create_repository(dsn: str) -> Repository:
    """Create a repository from a DSN

    Example:

    ```python
    repository = create_repository("sqlite:///var/lib/graph.db")
    ```

    Args:
        dsn (str): Repository DSN; the scheme selects the repository type

    Raises:
        RepositoryConfigError: If no repository type handles the scheme

    Returns:
        Repository: The new, uninitialized repository
    """
    parts = urlparse(dsn)

    for repository_type in Repository.registered_repositories:
        if parts.scheme == repository_type.scheme:
            return repository_type.from_dsn(dsn)
    raise RepositoryConfigError(f"No repository available for {dsn!r}")
