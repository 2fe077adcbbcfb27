from __future__ import annotations

from typing import TYPE_CHECKING, Dict

from graphtx.exception import GraphTxError

if TYPE_CHECKING:
    from graphtx.transaction.coordinator import TransactionCoordinator

DEFAULT_MANAGER = "default"


class CoordinatorRegistry:
    _singleton = None
    _coordinators: Dict[str, TransactionCoordinator]

    def __new__(cls, *args, **kwargs):
        if cls._singleton is None:
            cls.reset()
        return cls._singleton

    @classmethod
    def add(cls, name: str, coordinator: TransactionCoordinator) -> None:
        instance = cls()
        registered = instance._coordinators.get(name)
        if registered is not None and registered is not coordinator:
            raise GraphTxError(
                f"A transaction manager is already registered as {name!r}"
            )
        instance._coordinators[name] = coordinator

    @classmethod
    def get(cls, name: str = DEFAULT_MANAGER) -> TransactionCoordinator:
        try:
            return cls()._coordinators[name]
        except KeyError as e:
            raise GraphTxError(
                f"No transaction manager registered as {name!r}"
            ) from e

    def __contains__(self, name: str) -> bool:
        return name in self._coordinators

    def __len__(self) -> int:
        return len(self._coordinators)

    @classmethod
    def reset(cls):
        cls._singleton = super().__new__(cls)
        cls._singleton._coordinators = {}
