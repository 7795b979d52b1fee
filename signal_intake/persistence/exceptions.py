"""Persistence layer exceptions.

Repositories translate SQLAlchemy failures into these types so callers never
depend on the database driver. The batch runner treats any PersistenceError as
a per-item failure.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Database could not be initialized, reached, or was used before init.

    Examples:
    - Invalid database URL
    - Database file not writable
    - ``get_session()`` called before ``init_database()``
    """

    pass


class RecordNotFoundError(PersistenceError):
    """An operation referenced a company or record id that does not exist."""

    pass


class DataIntegrityError(PersistenceError):
    """A constraint was violated.

    Examples:
    - Second insert of the same (source, external_id) record
    - Signal or contact pointing at a missing company
    """

    pass
