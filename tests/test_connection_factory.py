import asyncio
from unittest.mock import AsyncMock

import pytest

from graphtx import RepositoryConnectionFactory
from graphtx.exception import (
    ConnectionClosedError,
    IllegalTransactionStateError,
    NoTransactionError,
    RepositoryError,
    TransactionSystemError,
)

from .helpers import add_data, assert_data_present, select_b


async def test_factory_does_not_create_connection(factory):
    with pytest.raises(NoTransactionError):
        await factory.get_connection()


def test_no_local_transaction_object(factory):
    assert factory.get_local_transaction_object() is None


async def test_transaction_creates_connection(factory):
    handle = await factory.create_transaction()
    try:
        connection = await factory.get_connection()

        assert connection is handle.connection
        assert connection.is_open()
        assert factory.get_local_transaction_object() is handle
    finally:
        await factory.close_connection()


async def test_transaction_disables_auto_commit(factory):
    await factory.create_transaction()
    try:
        connection = await factory.get_connection()

        assert connection.is_active()
    finally:
        await factory.close_connection()


async def test_connection_is_reused_within_context(factory):
    await factory.create_transaction()
    try:
        first = await factory.get_connection()
        second = await factory.get_connection()

        assert first is second
    finally:
        await factory.close_connection()


async def test_second_create_transaction_rejected(factory):
    handle = await factory.create_transaction()
    try:
        with pytest.raises(IllegalTransactionStateError):
            await factory.create_transaction()

        assert factory.get_local_transaction_object() is handle
    finally:
        await factory.close_connection()


async def test_write_and_commit(factory):
    await factory.create_transaction()
    try:
        await add_data(factory)
        assert_data_present(await select_b(factory))
        await factory.end_transaction(rollback=False)
    finally:
        await factory.close_connection()

    await factory.create_transaction()
    try:
        assert_data_present(await select_b(factory))
    finally:
        await factory.close_connection()


async def test_write_and_rollback(factory):
    await factory.create_transaction()
    try:
        await add_data(factory)
        await factory.end_transaction(rollback=True)
    finally:
        await factory.close_connection()

    await factory.create_transaction()
    try:
        assert await select_b(factory) == []
    finally:
        await factory.close_connection()


async def test_end_transaction_twice_is_noop(factory):
    await factory.create_transaction()
    try:
        await add_data(factory)
        await factory.end_transaction(rollback=False)
        connection = factory.get_local_transaction_object().connection
        assert not connection.is_active()

        await factory.end_transaction(rollback=False)
        await factory.end_transaction(rollback=True)
    finally:
        await factory.close_connection()


async def test_end_transaction_without_transaction(factory):
    with pytest.raises(NoTransactionError):
        await factory.end_transaction(rollback=False)


async def test_close_connection_without_transaction(factory):
    with pytest.raises(NoTransactionError):
        await factory.close_connection()


async def test_close_connection_releases_binding(factory):
    handle = await factory.create_transaction()
    await factory.close_connection()

    assert not handle.connection.is_open()
    assert factory.get_local_transaction_object() is None


async def test_connection_closed_during_transaction(factory):
    handle = await factory.create_transaction()
    await handle.connection.close()

    with pytest.raises(ConnectionClosedError):
        await factory.get_connection()

    with pytest.raises(ConnectionClosedError):
        await factory.end_transaction(rollback=False)

    with pytest.raises(ConnectionClosedError):
        await factory.close_connection()

    assert factory.get_local_transaction_object() is None


async def test_failed_close_releases_binding(memory_repository):
    factory = RepositoryConnectionFactory(memory_repository)
    handle = await factory.create_transaction()
    handle.connection.close = AsyncMock(side_effect=RepositoryError("boom"))

    with pytest.raises(TransactionSystemError) as exc_info:
        await factory.close_connection()

    assert isinstance(exc_info.value.__cause__, RepositoryError)
    assert factory.get_local_transaction_object() is None


async def test_failed_connection_leaves_nothing_bound(memory_repository):
    factory = RepositoryConnectionFactory(memory_repository)
    memory_repository._open_connection = AsyncMock(
        side_effect=OSError("unavailable")
    )

    with pytest.raises(RepositoryError):
        await factory.create_transaction()

    assert factory.get_local_transaction_object() is None


async def test_transactions_are_bound_per_task(factory):
    handle = await factory.create_transaction()
    try:

        async def in_other_task():
            assert factory.get_local_transaction_object() is None
            other = await factory.create_transaction()
            try:
                assert other is not handle
                return await factory.get_connection()
            finally:
                await factory.close_connection()

        other_connection = await asyncio.create_task(in_other_task())

        assert other_connection is not handle.connection
        assert factory.get_local_transaction_object() is handle
    finally:
        await factory.close_connection()


async def test_destroy_shuts_down_once(memory_repository):
    factory = RepositoryConnectionFactory(memory_repository)
    await memory_repository.initialize()
    memory_repository._teardown = AsyncMock()

    await factory.destroy()
    await factory.destroy()

    memory_repository._teardown.assert_awaited_once()
    assert not memory_repository.is_initialized()


async def test_destroy_uninitialized_repository(memory_repository):
    factory = RepositoryConnectionFactory(memory_repository)
    memory_repository._teardown = AsyncMock()

    await factory.destroy()

    memory_repository._teardown.assert_not_awaited()
