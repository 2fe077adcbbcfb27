"""
Transaction management for graph repositories.

Transactions are bound to the execution context (task or thread) that
creates them, are never nested, and always release their connection.
"""

from .coordinator import TransactionCoordinator
from .factory import (
    ConnectionFactory,
    RepositoryConnectionFactory,
    RepositoryManagerConnectionFactory,
)
from .handle import TransactionHandle
from .status import TransactionStatus

__all__ = [
    "ConnectionFactory",
    "RepositoryConnectionFactory",
    "RepositoryManagerConnectionFactory",
    "TransactionCoordinator",
    "TransactionHandle",
    "TransactionStatus",
]
