class DatabaseError(Exception):
    """Base class for every failure raised while reading a database file."""


class IoFailure(DatabaseError):
    """The database file could not be opened, seeked or read."""


class TruncatedInput(DatabaseError):
    """Fewer bytes were available than a varint or fixed-width field needs."""


class NotADatabaseFile(DatabaseError):
    pass


class UnsupportedEncoding(DatabaseError):
    pass


class CorruptPage(DatabaseError):
    """A page header, cell pointer or overflow chain is inconsistent."""


class UnsupportedSerialType(DatabaseError):
    pass


class TableNotFound(DatabaseError):
    pass


class UnsupportedQuery(DatabaseError):
    """The query is not a plain COUNT(*) or the table does not fit in one page."""
