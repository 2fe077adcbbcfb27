from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Tuple, Type


class IsolationLevel(IntEnum):
    """Isolation levels that can be requested for a transaction"""

    DEFAULT = -1
    READ_UNCOMMITTED = 1
    READ_COMMITTED = 2
    REPEATABLE_READ = 4
    SERIALIZABLE = 8


class Propagation(Enum):
    """How a transactional scope relates to an already active transaction

    Nested transactions are not supported: `REQUIRES_NEW` and `NESTED` join
    the active transaction like `REQUIRED` does.
    """

    REQUIRED = 0
    SUPPORTS = 1
    MANDATORY = 2
    REQUIRES_NEW = 3
    NOT_SUPPORTED = 4
    NEVER = 5
    NESTED = 6


TIMEOUT_DEFAULT = -1


@dataclass(frozen=True)
class TransactionDefinition:
    """Attributes of a transactional scope.

    Args:
        name (str, optional): Name of the scope. Defaults to `""`.
        propagation (Propagation, optional): Defaults to `REQUIRED`.
        isolation_level (IsolationLevel, optional): Defaults to `DEFAULT`,
            the repository's own default level.
        timeout (int, optional): Timeout in seconds, recorded on the
            transaction. Defaults to `-1` (none).
        read_only (bool, optional): Defaults to `False`.
        rollback_for (Tuple[Type[BaseException], ...], optional): Exception
            types that roll the transaction back. Defaults to every
            exception.
        no_rollback_for (Tuple[Type[BaseException], ...], optional):
            Exception types that commit the transaction even though they
            match `rollback_for`. Defaults to `()`.
    """

    name: str = ""
    propagation: Propagation = Propagation.REQUIRED
    isolation_level: IsolationLevel = IsolationLevel.DEFAULT
    timeout: int = TIMEOUT_DEFAULT
    read_only: bool = False
    rollback_for: Tuple[Type[BaseException], ...] = (BaseException,)
    no_rollback_for: Tuple[Type[BaseException], ...] = ()

    def rollback_on(self, exc: BaseException) -> bool:
        if self.no_rollback_for and isinstance(exc, self.no_rollback_for):
            return False
        return isinstance(exc, self.rollback_for)
