class GraphTxError(Exception):
    """Base exception for graphtx"""


class RepositoryError(GraphTxError):
    """Raised when a repository cannot provide a connection or fails to
    begin, commit or roll back"""


class RepositoryConfigError(GraphTxError):
    """Raised when a repository cannot be resolved from its configuration"""


class TransactionError(GraphTxError):
    """Base exception for transaction errors"""


class NoTransactionError(TransactionError):
    """Raised when no transaction is bound to the current context"""


class ConnectionClosedError(TransactionError):
    """Raised when a transaction connection was closed while in use"""


class InvalidIsolationLevelError(TransactionError):
    """Raised when an isolation level is not supported by a repository"""


class IllegalTransactionStateError(TransactionError):
    """Raised when a transaction is requested in a state that does not
    allow it"""


class TransactionSystemError(TransactionError):
    """Raised when an underlying failure prevents transaction handling"""
