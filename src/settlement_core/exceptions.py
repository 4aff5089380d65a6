"""Domain-specific exceptions for the settlement engine.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from SettlementAPIError for easy catching.
"""


class SettlementAPIError(Exception):
    """Base exception for all settlement engine errors.

    Users can catch this exception to handle any error raised by the
    package itself.
    """

    pass


class ConfigError(SettlementAPIError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid settlement units or rates are provided
    - A period key (year, month) is malformed
    - Configuration files cannot be loaded or parsed
    """

    pass


class DataQualityError(SettlementAPIError):
    """Raised when sales input fails basic sanity checks.

    This exception is raised when:
    - Visitor counts are negative
    - Daily records carry malformed dates
    """

    pass


class StoreError(SettlementAPIError):
    """Raised when the month store cannot read or write a snapshot.

    This exception is raised when:
    - A stored snapshot is not valid JSON
    - Writing a snapshot to disk fails
    """

    pass
