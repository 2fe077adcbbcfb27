import pytest

from graphtx import Isolation, IsolationLevel, MemoryRepository, adapt
from graphtx.exception import InvalidIsolationLevelError


@pytest.fixture
def restricted_repository():
    return MemoryRepository(
        "restricted",
        supported_isolation_levels={Isolation.NONE},
        default_isolation_level=Isolation.NONE,
    )


def test_default_is_repository_default(memory_repository):
    assert adapt(memory_repository, IsolationLevel.DEFAULT) is (
        Isolation.SNAPSHOT_READ
    )


def test_default_is_never_validated(restricted_repository):
    assert adapt(restricted_repository, IsolationLevel.DEFAULT) is (
        Isolation.NONE
    )


@pytest.mark.parametrize(
    "level,expected",
    (
        (IsolationLevel.READ_UNCOMMITTED, Isolation.READ_UNCOMMITTED),
        (IsolationLevel.READ_COMMITTED, Isolation.READ_COMMITTED),
        (IsolationLevel.SERIALIZABLE, Isolation.SERIALIZABLE),
    ),
)
def test_supported_levels(memory_repository, level, expected):
    assert adapt(memory_repository, level) is expected
    assert adapt(memory_repository, int(level)) is expected


def test_adapt_is_pure(memory_repository):
    first = adapt(memory_repository, IsolationLevel.READ_COMMITTED)
    second = adapt(memory_repository, IsolationLevel.READ_COMMITTED)

    assert first is second
    assert memory_repository.supported_isolation_levels == frozenset(
        Isolation
    )


@pytest.mark.parametrize(
    "supported", (frozenset(Isolation), frozenset({Isolation.NONE}))
)
def test_repeatable_read_always_rejected(supported):
    repository = MemoryRepository(supported_isolation_levels=supported)

    with pytest.raises(InvalidIsolationLevelError):
        adapt(repository, IsolationLevel.REPEATABLE_READ)


def test_unsupported_level_names_repository_and_level(restricted_repository):
    with pytest.raises(InvalidIsolationLevelError) as exc_info:
        adapt(restricted_repository, IsolationLevel.READ_COMMITTED)

    message = str(exc_info.value)
    assert "memory://restricted" in message
    assert "READ_COMMITTED" in message


@pytest.mark.parametrize(
    "level", (3, 99, "serializable", None, True, False, 8.0, 2.0)
)
def test_unknown_levels_rejected(memory_repository, level):
    with pytest.raises(InvalidIsolationLevelError):
        adapt(memory_repository, level)
