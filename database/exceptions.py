"""Database exception hierarchy."""


class DatabaseError(Exception):
    """Base exception for database operations."""
    pass


class DatabaseSchemaError(DatabaseError):
    """Raised when the schema cannot be loaded, validated or migrated."""
    pass


class DatabaseNotInitializedError(DatabaseError):
    """Raised when the connection pool is requested before it exists."""
    pass


class ConstraintViolationError(DatabaseError):
    """Raised when a write is rejected by a storage-level constraint."""
    pass


class NegativeBalanceError(ConstraintViolationError):
    """Raised when a debit would take an account balance below zero.

    The transaction that attempted the debit has been rolled back.
    """
    pass
