from __future__ import annotations

from typing import Any, Dict

from graphtx.definition import IsolationLevel
from graphtx.exception import InvalidIsolationLevelError
from graphtx.repository.base import Isolation, IsolationSupport

NATIVE_LEVELS: Dict[IsolationLevel, Isolation] = {
    IsolationLevel.READ_UNCOMMITTED: Isolation.READ_UNCOMMITTED,
    IsolationLevel.READ_COMMITTED: Isolation.READ_COMMITTED,
    IsolationLevel.SERIALIZABLE: Isolation.SERIALIZABLE,
}


def adapt(repository: IsolationSupport, level: Any) -> Isolation:
    """Translate a requested isolation level into the repository's own
    isolation level.

    `IsolationLevel.DEFAULT` resolves to the repository's default level.
    `IsolationLevel.REPEATABLE_READ` has no repository counterpart and is
    always rejected.

    Args:
        repository (IsolationSupport): The repository the level is meant for
        level (IsolationLevel): The requested level

    Raises:
        InvalidIsolationLevelError: If the level cannot be translated, or
            the translated level is not supported by the repository

    Returns:
        Isolation: The repository isolation level
    """
    if isinstance(level, bool) or not isinstance(level, int):
        raise InvalidIsolationLevelError(
            f"Unsupported isolation level for {repository}: {level!r}"
        )
    try:
        requested = IsolationLevel(level)
    except ValueError as e:
        raise InvalidIsolationLevelError(
            f"Unsupported isolation level for {repository}: {level}"
        ) from e

    if requested is IsolationLevel.DEFAULT:
        return repository.default_isolation_level

    native = NATIVE_LEVELS.get(requested)
    if native is None or native not in repository.supported_isolation_levels:
        raise InvalidIsolationLevelError(
            f"Unsupported isolation level for {repository}: {requested.name}"
        )
    return native
