from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextvars import ContextVar
from typing import Dict, Optional, Tuple

from graphtx.exception import (
    ConnectionClosedError,
    IllegalTransactionStateError,
    NoTransactionError,
    RepositoryConfigError,
    RepositoryError,
    TransactionSystemError,
)
from graphtx.manager import RepositoryManager
from graphtx.repository import Repository, RepositoryConnection

from .handle import TransactionHandle

logger = logging.getLogger(__name__)


class ConnectionFactory(ABC):
    """Hands out the connection of the transaction bound to the current
    execution context and manages that transaction's lifecycle.

    A transaction is bound to the task (or thread) that created it. Other
    tasks, including ones spawned from inside the transaction, never see it.
    """

    @abstractmethod
    async def get_connection(self) -> RepositoryConnection:
        """Fetch the connection of the current transaction. A repository
        transaction is begun on it if none is active.

        Raises:
            NoTransactionError: If no transaction is active
            ConnectionClosedError: If the connection was closed during the
                transaction

        Returns:
            RepositoryConnection: The transaction's connection
        """

    @abstractmethod
    async def close_connection(self) -> None:
        """Close the connection of the current transaction and unbind the
        transaction from the execution context.

        The transaction is unbound even if closing fails.

        Raises:
            NoTransactionError: If no transaction is active
            ConnectionClosedError: If the connection was closed during the
                transaction
            TransactionSystemError: If the connection could not be closed
        """

    @abstractmethod
    async def create_transaction(self) -> TransactionHandle:
        """Open a connection and bind a new transaction to the current
        execution context.

        Raises:
            IllegalTransactionStateError: If a transaction is already bound
            RepositoryError: If the repository cannot open a connection

        Returns:
            TransactionHandle: The new transaction
        """

    @abstractmethod
    async def end_transaction(self, rollback: bool) -> None:
        """Commit or roll back the current transaction. Does nothing when
        the connection has no active repository transaction.

        Args:
            rollback (bool): Whether to roll back instead of committing

        Raises:
            NoTransactionError: If no transaction is active
            ConnectionClosedError: If the connection was closed during the
                transaction
            RepositoryError: If the repository fails to commit or roll back
        """

    @abstractmethod
    def get_local_transaction_object(self) -> Optional[TransactionHandle]:
        """The transaction bound to the current execution context, if any"""

    @abstractmethod
    async def destroy(self) -> None:
        """Shut down the underlying repository. Safe to call repeatedly."""


class RepositoryConnectionFactory(ConnectionFactory):
    """Connection factory for a single repository

    Example:

    ```python
    factory = RepositoryConnectionFactory(MemoryRepository())
    coordinator = TransactionCoordinator(factory)

    @transactional(coordinator)
    async def add_person(uri):
        connection = await factory.get_connection()
        await connection.add(uri, RDF.type, FOAF.Person)
    ```
    """

    def __init__(self, repository: Repository) -> None:
        self._repository = repository
        self._transaction: ContextVar[Optional[TransactionHandle]] = (
            ContextVar("transaction", default=None)
        )

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self._repository}>"

    @property
    def repository(self) -> Repository:
        return self._repository

    def get_local_transaction_object(self) -> Optional[TransactionHandle]:
        handle = self._transaction.get()
        if handle is None or not handle.is_owned_by_current_context():
            return None
        return handle

    async def get_connection(self) -> RepositoryConnection:
        connection = self._require_handle().connection

        if not connection.is_open():
            raise ConnectionClosedError(
                "Cannot get connection. Connection closed during transaction"
            )

        if not connection.is_active():
            try:
                await connection.begin()
            except RepositoryError as e:
                raise TransactionSystemError(str(e)) from e

        return connection

    async def close_connection(self) -> None:
        handle = self._require_handle()
        connection = handle.connection
        close_error: Optional[RepositoryError] = None

        try:
            if not connection.is_open():
                raise ConnectionClosedError(
                    "Connection closed during transaction"
                )
        finally:
            try:
                await connection.close()
            except RepositoryError as e:
                logger.error("Error closing %s: %s", connection, e)
                close_error = e
            finally:
                self._transaction.set(None)
                logger.debug("Released %r", handle)

        if close_error is not None:
            raise TransactionSystemError(str(close_error)) from close_error

    async def create_transaction(self) -> TransactionHandle:
        if self.get_local_transaction_object() is not None:
            raise IllegalTransactionStateError(
                "A transaction is already active in this context"
            )

        connection = await self._repository.get_connection()
        handle = TransactionHandle(connection)
        self._transaction.set(handle)
        logger.debug("Created transaction on %s", connection)

        return handle

    async def end_transaction(self, rollback: bool) -> None:
        connection = self._require_handle().connection

        if not connection.is_open():
            raise ConnectionClosedError(
                "Cannot end transaction: Connection closed during transaction"
            )

        if not connection.is_active():
            return

        if rollback:
            await connection.rollback()
            logger.debug("Rolled back %s", connection)
        else:
            await connection.commit()
            logger.debug("Committed %s", connection)

    async def destroy(self) -> None:
        if self._repository.is_initialized():
            await self._repository.shutdown()

    def _require_handle(self) -> TransactionHandle:
        handle = self.get_local_transaction_object()
        if handle is None:
            raise NoTransactionError("No transaction active")
        return handle


class RepositoryManagerConnectionFactory(ConnectionFactory):
    """Connection factory for the repositories of a `RepositoryManager`.

    The repository is selected per execution context through
    `repository_id`, so concurrent tasks can work against different
    repositories. The repository is looked up when a context first needs
    it and kept until its transaction's connection is closed, even if
    `repository_id` changes in the meantime.

    Example:

    ```python
    factory = RepositoryManagerConnectionFactory(manager)

    async def handle_request(tenant):
        factory.repository_id = tenant
        async with coordinator.transaction():
            connection = await factory.get_connection()
            ...
    ```
    """

    def __init__(
        self,
        repository_manager: RepositoryManager,
        repository_id: Optional[str] = None,
    ) -> None:
        """Initializer for a RepositoryManagerConnectionFactory

        Args:
            repository_manager (RepositoryManager): Resolves repository ids
            repository_id (str, optional): Repository id used by execution
                contexts that do not set their own. Defaults to `None`.
        """
        self._repository_manager = repository_manager
        self._default_repository_id = repository_id
        self._repository_id: ContextVar[Optional[str]] = ContextVar(
            "repository_id", default=None
        )
        self._local_factory: ContextVar[
            Optional[Tuple[str, RepositoryConnectionFactory]]
        ] = ContextVar("local_factory", default=None)
        self._factories: Dict[str, RepositoryConnectionFactory] = {}

    def __str__(self) -> str:
        return (
            f"<{self.__class__.__name__} {self._repository_manager} "
            f"repository_id={self.repository_id!r}>"
        )

    @property
    def repository_manager(self) -> RepositoryManager:
        return self._repository_manager

    @property
    def repository_id(self) -> Optional[str]:
        repository_id = self._repository_id.get()
        if repository_id is None:
            return self._default_repository_id
        return repository_id

    @repository_id.setter
    def repository_id(self, repository_id: Optional[str]) -> None:
        self._repository_id.set(repository_id)

    def get_local_transaction_object(self) -> Optional[TransactionHandle]:
        cached = self._local_factory.get()
        if cached is None:
            return None
        return cached[1].get_local_transaction_object()

    async def get_connection(self) -> RepositoryConnection:
        return await self._connection_factory().get_connection()

    async def close_connection(self) -> None:
        if self._local_factory.get() is None:
            raise NoTransactionError("No transaction active")

        try:
            await self._connection_factory().close_connection()
        finally:
            self._local_factory.set(None)

    async def create_transaction(self) -> TransactionHandle:
        return await self._connection_factory().create_transaction()

    async def end_transaction(self, rollback: bool) -> None:
        await self._connection_factory().end_transaction(rollback)

    async def destroy(self) -> None:
        for factory in list(self._factories.values()):
            await factory.destroy()

    def _connection_factory(self) -> RepositoryConnectionFactory:
        repository_id = self.repository_id
        cached = self._local_factory.get()

        if cached is not None:
            cached_id, factory = cached
            if (
                cached_id == repository_id
                or factory.get_local_transaction_object() is not None
            ):
                return factory

        if not repository_id:
            raise RepositoryConfigError(
                "Local repository id has not been initialized"
            )

        factory = self._factories.get(repository_id)
        if factory is None:
            repository = self._repository_manager.get_repository(
                repository_id
            )
            factory = self._factories.setdefault(
                repository_id, RepositoryConnectionFactory(repository)
            )
            logger.debug("Resolved %r to %s", repository_id, repository)

        self._local_factory.set((repository_id, factory))
        return factory
