from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, AsyncIterator, Optional

from graphtx.context import context_name
from graphtx.definition import Propagation, TransactionDefinition
from graphtx.exception import (
    IllegalTransactionStateError,
    RepositoryError,
    TransactionError,
    TransactionSystemError,
)
from graphtx.isolation import adapt
from graphtx.registry import DEFAULT_MANAGER, CoordinatorRegistry
from graphtx.repository import IsolationSupport, RepositoryConnection

from .factory import ConnectionFactory
from .handle import TransactionHandle
from .status import TransactionStatus

logger = logging.getLogger(__name__)

JOINING_PROPAGATIONS = (Propagation.REQUIRES_NEW, Propagation.NESTED)


class TransactionCoordinator:
    """Drives the lifecycle of transactions handed out by a
    `ConnectionFactory`.

    The low level operations (`obtain`, `begin`, `commit`, `rollback`,
    `set_rollback_only`, `cleanup`) are meant for code that manages
    transactional scopes itself. Application code would normally use
    `transaction()` or the `transactional` decorator, which call them in
    order and always clean up.

    Transactions are not nested: requesting a transaction while one is
    active in the same execution context joins the active one.

    Example:

    ```python
    coordinator = TransactionCoordinator(
        RepositoryConnectionFactory(MemoryRepository())
    )

    async with coordinator.transaction(name="import") as status:
        connection = await status.connection()
        await connection.add(subject, predicate, obj)
    ```
    """

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        *,
        name: Optional[str] = DEFAULT_MANAGER,
    ) -> None:
        """Initializer for a TransactionCoordinator

        Args:
            connection_factory (ConnectionFactory): Provides the connections
                and holds the transaction state
            name (str, optional): Name to register the coordinator under
                for lookup by `transactional`. Pass `None` to skip
                registration. Defaults to `"default"`.

        Raises:
            GraphTxError: If another coordinator is already registered
                under `name`
        """
        self._connection_factory = connection_factory
        self.name = name
        if name:
            CoordinatorRegistry.add(name, self)

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self._connection_factory}>"

    @property
    def connection_factory(self) -> ConnectionFactory:
        return self._connection_factory

    def current_handle(self) -> Optional[TransactionHandle]:
        return self._connection_factory.get_local_transaction_object()

    async def connection(self) -> RepositoryConnection:
        return await self._connection_factory.get_connection()

    async def obtain(self) -> TransactionHandle:
        """Get the transaction bound to the current execution context,
        creating one if there is none. A transaction that already existed
        is marked as such.

        Raises:
            TransactionSystemError: If no transaction could be created
        """
        handle = self._connection_factory.get_local_transaction_object()

        if handle is not None:
            handle.existing = True
            return handle

        try:
            return await self._connection_factory.create_transaction()
        except Exception as e:
            raise TransactionSystemError(
                f"Could not create transaction: {e}"
            ) from e

    def is_existing(self, handle: TransactionHandle) -> bool:
        return handle.existing

    async def begin(
        self, handle: TransactionHandle, definition: TransactionDefinition
    ) -> None:
        """Apply the attributes of a definition to a new transaction,
        including its isolation level when the repository supports
        choosing one.

        Raises:
            InvalidIsolationLevelError: If the repository cannot provide
                the requested isolation level
            TransactionSystemError: If the isolation level cannot be set
        """
        handle.timeout = definition.timeout
        handle.isolation_level = definition.isolation_level
        handle.propagation = definition.propagation
        handle.read_only = definition.read_only
        handle.name = f"{context_name()} {definition.name}"

        self._apply_isolation_level(handle, definition.isolation_level)
        logger.debug("Began transaction %r", handle.name)

    def _apply_isolation_level(
        self, handle: TransactionHandle, requested: Any
    ) -> None:
        connection = handle.connection
        repository = connection.repository

        if not isinstance(repository, IsolationSupport):
            logger.debug(
                "%s has no isolation levels, ignoring %s",
                repository,
                requested,
            )
            return

        level = adapt(repository, requested)
        try:
            connection.isolation_level = level
        except RepositoryError as e:
            raise TransactionSystemError(str(e)) from e

    async def commit(self, handle: TransactionHandle) -> None:
        """Commit the transaction, or roll it back if it was marked
        rollback-only"""
        if handle.rollback_only:
            logger.debug(
                "Transaction %r is rollback-only, rolling back", handle.name
            )
        await self._end_transaction(handle.rollback_only)

    async def rollback(self, handle: TransactionHandle) -> None:
        await self._end_transaction(True)

    def set_rollback_only(self, handle: TransactionHandle) -> None:
        handle.set_rollback_only()

    async def cleanup(self, handle: TransactionHandle) -> None:
        """Close the transaction's connection and unbind it from the
        execution context. Must run whenever a transactional scope ends."""
        try:
            await self._connection_factory.close_connection()
        except Exception as e:
            logger.error(
                "Error during cleanup of transaction %r: %s", handle.name, e
            )
            raise

    async def _end_transaction(self, rollback: bool) -> None:
        try:
            await self._connection_factory.end_transaction(rollback)
        except TransactionError:
            raise
        except RepositoryError as e:
            raise TransactionSystemError(str(e)) from e

    @asynccontextmanager
    async def transaction(
        self,
        definition: Optional[TransactionDefinition] = None,
        **attributes: Any,
    ) -> AsyncIterator[TransactionStatus]:
        """Run a block in a transaction.

        A new transaction is committed when the block finishes and rolled
        back when the block raises an exception matching the definition's
        rollback rules. A block running inside an already active
        transaction joins it; if such a block raises, the whole
        transaction is marked rollback-only.

        Args:
            definition (TransactionDefinition, optional): Attributes of the
                transaction. Defaults to `None`.
            **attributes: `TransactionDefinition` fields, overriding those
                of `definition`

        Raises:
            IllegalTransactionStateError: If the propagation rules forbid
                the transaction

        Yields:
            TransactionStatus: The transaction's status
        """
        if definition is None:
            definition = TransactionDefinition(**attributes)
        elif attributes:
            definition = replace(definition, **attributes)

        handle = await self.obtain()

        if self.is_existing(handle):
            async with self._join(handle, definition) as status:
                yield status
            return

        status = TransactionStatus(self, handle, definition, True)
        try:
            if definition.propagation is Propagation.MANDATORY:
                raise IllegalTransactionStateError(
                    "No existing transaction found for transaction marked "
                    "with propagation 'mandatory'"
                )
            await self.begin(handle, definition)
            try:
                yield status
            except BaseException as exc:
                await self._complete_after_exception(status, exc)
                raise
            await self.commit(handle)
            status._completed = True
            logger.info(
                "Transaction %r %s",
                handle.name,
                "rolled back" if handle.rollback_only else "committed",
            )
        except BaseException:
            await self._cleanup_after_exception(handle)
            raise
        else:
            await self.cleanup(handle)

    @asynccontextmanager
    async def _join(
        self, handle: TransactionHandle, definition: TransactionDefinition
    ) -> AsyncIterator[TransactionStatus]:
        if definition.propagation is Propagation.NEVER:
            raise IllegalTransactionStateError(
                "Existing transaction found for transaction marked with "
                "propagation 'never'"
            )
        if definition.propagation in JOINING_PROPAGATIONS:
            logger.debug(
                "Nested transactions are not supported, joining %r",
                handle.name,
            )

        try:
            yield TransactionStatus(self, handle, definition, False)
        except BaseException as exc:
            if definition.rollback_on(exc):
                logger.debug(
                    "Participating scope %r failed, marking %r "
                    "rollback-only",
                    definition.name,
                    handle.name,
                )
                self.set_rollback_only(handle)
            raise

    async def _complete_after_exception(
        self, status: TransactionStatus, exc: BaseException
    ) -> None:
        handle = status.handle
        try:
            if status.definition.rollback_on(exc):
                await self.rollback(handle)
                logger.info(
                    "Transaction %r rolled back after %r", handle.name, exc
                )
            else:
                await self.commit(handle)
        except Exception as e:
            logger.error(
                "Could not complete transaction %r after %r: %s",
                handle.name,
                exc,
                e,
            )
        status._completed = True

    async def _cleanup_after_exception(
        self, handle: TransactionHandle
    ) -> None:
        try:
            await self.cleanup(handle)
        except Exception:
            # logged by cleanup()
            pass
