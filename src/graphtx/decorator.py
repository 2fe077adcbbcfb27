from functools import wraps
from inspect import isclass, iscoroutinefunction

from graphtx.definition import (
    TIMEOUT_DEFAULT,
    IsolationLevel,
    Propagation,
    TransactionDefinition,
)
from graphtx.exception import GraphTxError
from graphtx.registry import DEFAULT_MANAGER, CoordinatorRegistry


def transactional(
    manager=None,
    *,
    name=None,
    propagation=Propagation.REQUIRED,
    isolation=IsolationLevel.DEFAULT,
    read_only=False,
    timeout=TIMEOUT_DEFAULT,
    rollback_for=(BaseException,),
    no_rollback_for=(),
):
    """Run a coroutine function in a transaction.

    The transaction is committed when the function returns and rolled back
    when it raises one of `rollback_for` (by default: anything). Calls made
    while a transaction is already active join it.

    Example:

    ```python
    from graphtx import transactional

    @transactional
    async def add_person(uri):
        connection = await factory.get_connection()
        await connection.add(uri, RDF.type, FOAF.Person)

    @transactional("catalog", isolation=IsolationLevel.SERIALIZABLE)
    async def reindex():
        ...
    ```

    Args:
        manager (Union[TransactionCoordinator, str], optional): The
            coordinator, or the name it was registered under. Defaults to
            `None`, the default coordinator.
        name (str, optional): Transaction name. Defaults to the function's
            qualified name.
        propagation (Propagation, optional): Defaults to `REQUIRED`.
        isolation (IsolationLevel, optional): Defaults to `DEFAULT`.
        read_only (bool, optional): Defaults to `False`.
        timeout (int, optional): Defaults to `-1` (none).
        rollback_for (Tuple[Type[BaseException], ...], optional): Exception
            types that cause a rollback. Defaults to `(BaseException,)`.
        no_rollback_for (Tuple[Type[BaseException], ...], optional):
            Exception types that still commit. Defaults to `()`.
    """
    if iscoroutinefunction(manager):
        return transactional()(manager)

    if isclass(rollback_for):
        rollback_for = (rollback_for,)
    if isclass(no_rollback_for):
        no_rollback_for = (no_rollback_for,)

    def decorator(f):
        if not iscoroutinefunction(f):
            raise GraphTxError(
                f"Cannot make {f.__qualname__} transactional, "
                "it is not a coroutine function"
            )

        definition = TransactionDefinition(
            name=name or f.__qualname__,
            propagation=propagation,
            isolation_level=isolation,
            timeout=timeout,
            read_only=read_only,
            rollback_for=tuple(rollback_for),
            no_rollback_for=tuple(no_rollback_for),
        )

        @wraps(f)
        async def wrapper(*args, **kwargs):
            coordinator = _resolve(manager)
            async with coordinator.transaction(definition):
                return await f(*args, **kwargs)

        wrapper.transaction_definition = definition
        return wrapper

    return decorator


def _resolve(manager):
    if manager is None:
        return CoordinatorRegistry.get(DEFAULT_MANAGER)
    if isinstance(manager, str):
        return CoordinatorRegistry.get(manager)
    return manager
