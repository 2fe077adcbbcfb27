from __future__ import annotations

from typing import TYPE_CHECKING

from graphtx.definition import TransactionDefinition
from graphtx.repository import RepositoryConnection

from .handle import TransactionHandle

if TYPE_CHECKING:
    from .coordinator import TransactionCoordinator


class TransactionStatus:
    """A transactional scope's view of its transaction"""

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        handle: TransactionHandle,
        definition: TransactionDefinition,
        new_transaction: bool,
    ) -> None:
        self._coordinator = coordinator
        self._handle = handle
        self._definition = definition
        self._new_transaction = new_transaction
        self._completed = False

    def __repr__(self) -> str:
        status = "completed" if self._completed else "active"
        return f"<TransactionStatus {self._handle.name!r} ({status})>"

    @property
    def handle(self) -> TransactionHandle:
        return self._handle

    @property
    def definition(self) -> TransactionDefinition:
        return self._definition

    @property
    def is_new_transaction(self) -> bool:
        """Whether this scope started the transaction, as opposed to
        joining one that was already active"""
        return self._new_transaction

    @property
    def is_rollback_only(self) -> bool:
        return self._handle.rollback_only

    @property
    def is_completed(self) -> bool:
        return self._completed

    def set_rollback_only(self) -> None:
        self._coordinator.set_rollback_only(self._handle)

    async def connection(self) -> RepositoryConnection:
        return await self._coordinator.connection_factory.get_connection()
