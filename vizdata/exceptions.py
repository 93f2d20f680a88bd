"""
Custom exception hierarchy for vizdata.

Value conversion never raises on malformed input; it degrades to a
defined fallback instead. The exceptions below are reserved for
structural contract violations (duplicate row ids, ragged column
arrays), unreadable configuration and malformed class-JSON.
"""


class VizDataError(Exception):
    """Base exception for all vizdata errors."""


class ConfigValidationError(VizDataError):
    """Raised when a vizdata config file is empty or has an unusable shape."""


class TableStructureError(VizDataError):
    """Raised when a caller violates the structural contract of a table.

    For example, inserting a row object that already belongs to a
    different table.
    """


class DuplicateRowError(TableStructureError):
    """Raised when a row identifier is already present in the table."""


class ColumnLengthError(TableStructureError):
    """Raised when column arrays passed to a table builder differ in length."""


class ParsingError(VizDataError):
    """Raised when a parser receives input it cannot turn into columns.

    Parsers report this through the ``parseError`` event rather than
    letting it escape ``parse()``.
    """


class SerializationError(VizDataError):
    """Raised when class-JSON is malformed or carries an unknown ``classTag``."""
