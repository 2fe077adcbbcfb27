from .base import (
    Isolation,
    IsolationSupport,
    Repository,
    RepositoryConnection,
    create_repository,
)
from .memory import MemoryRepository
from .sqlite import SQLiteRepository

__all__ = (
    "Isolation",
    "IsolationSupport",
    "MemoryRepository",
    "Repository",
    "RepositoryConnection",
    "SQLiteRepository",
    "create_repository",
)
