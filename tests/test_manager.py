import pytest

from graphtx import (
    MemoryRepository,
    RepositoryConnectionFactory,
    RepositoryManager,
    SQLiteRepository,
    TransactionCoordinator,
    transactional,
)
from graphtx.exception import GraphTxError, RepositoryConfigError
from graphtx.registry import CoordinatorRegistry

from .helpers import A, B, C


def test_repositories_from_dsn(tmp_path):
    manager = RepositoryManager(
        {
            "cache": "memory://cache",
            "catalog": f"sqlite://{tmp_path}/catalog.db",
        }
    )

    assert sorted(manager.repository_ids) == ["cache", "catalog"]
    assert isinstance(manager.get_repository("cache"), MemoryRepository)
    assert isinstance(manager.get_repository("catalog"), SQLiteRepository)


def test_add_and_remove_repository(memory_repository):
    manager = RepositoryManager()
    manager.add_repository("graph", memory_repository)

    assert manager.has_repository("graph")
    assert manager.get_repository("graph") is memory_repository
    assert manager.remove_repository("graph") is memory_repository
    assert not manager.has_repository("graph")


def test_unknown_repository():
    manager = RepositoryManager()

    with pytest.raises(RepositoryConfigError):
        manager.get_repository("graph")

    with pytest.raises(RepositoryConfigError):
        manager.remove_repository("graph")


def test_empty_repository_id(memory_repository):
    with pytest.raises(RepositoryConfigError):
        RepositoryManager({"": memory_repository})


async def test_shutdown(repository_manager, memory_repository):
    await memory_repository.initialize()

    await repository_manager.shutdown()

    assert not memory_repository.is_initialized()


def test_coordinators_register_by_name(memory_repository):
    factory = RepositoryConnectionFactory(memory_repository)
    default = TransactionCoordinator(factory)
    named = TransactionCoordinator(factory, name="graph")
    TransactionCoordinator(factory, name=None)

    assert len(CoordinatorRegistry()) == 2
    assert CoordinatorRegistry.get() is default
    assert CoordinatorRegistry.get("graph") is named

    with pytest.raises(GraphTxError):
        CoordinatorRegistry.get("missing")


def test_default_coordinator_not_replaced(memory_repository, tmp_path):
    people = RepositoryConnectionFactory(memory_repository)
    other = RepositoryConnectionFactory(
        SQLiteRepository(str(tmp_path / "other.db"))
    )
    default = TransactionCoordinator(people)

    with pytest.raises(GraphTxError):
        TransactionCoordinator(other)

    assert CoordinatorRegistry.get() is default


async def test_bare_transactional_keeps_its_coordinator(
    memory_repository, tmp_path
):
    people = RepositoryConnectionFactory(memory_repository)
    TransactionCoordinator(people)

    @transactional
    async def add_person():
        connection = await people.get_connection()
        await connection.add(A, B, C)

    other = RepositoryConnectionFactory(
        SQLiteRepository(str(tmp_path / "other.db"))
    )
    with pytest.raises(GraphTxError):
        TransactionCoordinator(other)

    await add_person()

    connection = await memory_repository.get_connection()
    try:
        assert await connection.statements() == [(A, B, C)]
    finally:
        await connection.close()


def test_same_coordinator_registers_twice(memory_repository):
    coordinator = TransactionCoordinator(
        RepositoryConnectionFactory(memory_repository), name="graph"
    )

    CoordinatorRegistry.add("graph", coordinator)

    assert CoordinatorRegistry.get("graph") is coordinator
