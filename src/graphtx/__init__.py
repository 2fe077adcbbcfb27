from importlib.metadata import version

from .decorator import transactional
from .definition import IsolationLevel, Propagation, TransactionDefinition
from .isolation import adapt
from .manager import RepositoryManager
from .repository import (
    Isolation,
    MemoryRepository,
    Repository,
    RepositoryConnection,
    SQLiteRepository,
    create_repository,
)
from .transaction import (
    ConnectionFactory,
    RepositoryConnectionFactory,
    RepositoryManagerConnectionFactory,
    TransactionCoordinator,
    TransactionHandle,
    TransactionStatus,
)

__version__ = version("graphtx")

__all__ = (
    "adapt",
    "create_repository",
    "transactional",
    "ConnectionFactory",
    "Isolation",
    "IsolationLevel",
    "MemoryRepository",
    "Propagation",
    "Repository",
    "RepositoryConnection",
    "RepositoryConnectionFactory",
    "RepositoryManager",
    "RepositoryManagerConnectionFactory",
    "SQLiteRepository",
    "TransactionCoordinator",
    "TransactionDefinition",
    "TransactionHandle",
    "TransactionStatus",
)
