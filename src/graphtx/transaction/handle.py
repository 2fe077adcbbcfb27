from __future__ import annotations

from typing import Any, Optional

from graphtx.context import ExecutionContext, current_context
from graphtx.definition import (
    TIMEOUT_DEFAULT,
    IsolationLevel,
    Propagation,
)
from graphtx.repository import RepositoryConnection


class TransactionHandle:
    """State of a transaction bound to one execution context.

    Holds the transaction's connection, whether the transaction has been
    requested again while active (`existing`), whether it must be rolled
    back (`rollback_only`) and the attributes it was begun with.
    """

    def __init__(
        self,
        connection: RepositoryConnection,
        owner: Optional[ExecutionContext] = None,
    ) -> None:
        self._connection = connection
        self._owner = owner if owner is not None else current_context()
        self._rollback_only = False
        self.existing = False
        self.name = ""
        self.timeout = TIMEOUT_DEFAULT
        self.isolation_level: Any = IsolationLevel.DEFAULT
        self.propagation = Propagation.REQUIRED
        self.read_only = False

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} {self.name!r} "
            f"connection={self._connection} existing={self.existing} "
            f"rollback_only={self._rollback_only}>"
        )

    @property
    def connection(self) -> RepositoryConnection:
        return self._connection

    @property
    def owner(self) -> ExecutionContext:
        return self._owner

    @property
    def rollback_only(self) -> bool:
        return self._rollback_only

    def set_rollback_only(self) -> None:
        """Mark the transaction for rollback. Cannot be undone."""
        self._rollback_only = True

    def is_owned_by_current_context(self) -> bool:
        return self._owner is current_context()
