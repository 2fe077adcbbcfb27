import pytest

from graphtx import (
    MemoryRepository,
    RepositoryConnectionFactory,
    RepositoryManager,
    RepositoryManagerConnectionFactory,
    SQLiteRepository,
    TransactionCoordinator,
)
from graphtx.registry import CoordinatorRegistry


@pytest.fixture(autouse=True)
def reset_registry():
    CoordinatorRegistry.reset()


@pytest.fixture
def memory_repository():
    return MemoryRepository("test")


@pytest.fixture
def sqlite_repository(tmp_path):
    return SQLiteRepository(str(tmp_path / "graph.db"))


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, memory_repository, sqlite_repository):
    if request.param == "memory":
        return memory_repository
    return sqlite_repository


@pytest.fixture
def factory(repository):
    return RepositoryConnectionFactory(repository)


@pytest.fixture
def coordinator(factory):
    return TransactionCoordinator(factory)


@pytest.fixture
def repository_manager(memory_repository, sqlite_repository):
    return RepositoryManager(
        {"memory": memory_repository, "sqlite": sqlite_repository}
    )


@pytest.fixture
def manager_factory(repository_manager):
    return RepositoryManagerConnectionFactory(repository_manager, "memory")
