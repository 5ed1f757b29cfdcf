"""Error types for jdb-helper."""

from typing import Optional, Dict, Any, List


class JDBHelperError(Exception):
    """Base exception for jdb-helper errors."""

    def __init__(self, message: str, code: str = "JDB_HELPER_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON output."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class QueryError(JDBHelperError):
    """A classification or column query could not be completed."""

    def __init__(self, message: str, code: str = "QUERY_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class ExecutionError(QueryError):
    """The query executor failed to run a query.

    Raised by executors with the driver exception chained as ``__cause__``.
    The pipeline never wraps or retries it.
    """

    def __init__(self, message: str, query: Optional[str] = None, dialect: Optional[str] = None):
        details = {}
        if query is not None:
            details["query"] = query
        if dialect is not None:
            details["dialect"] = dialect
        super().__init__(message, code="EXECUTION_ERROR", details=details)
        self.query = query
        self.dialect = dialect


class ConnectionError(JDBHelperError):
    """Error connecting to the database."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONNECTION_ERROR", details=details)


class ContractViolation(JDBHelperError):
    """Column rows referenced tables that were not part of the selection."""

    def __init__(self, unexpected_tables: List[str], selected_tables: List[str]):
        super().__init__(
            f"Column query returned rows for unrequested tables: {', '.join(unexpected_tables)}",
            code="CONTRACT_VIOLATION",
            details={
                "unexpected_tables": unexpected_tables,
                "selected_tables": selected_tables,
            },
        )
        self.unexpected_tables = unexpected_tables
        self.selected_tables = selected_tables


class ConfigurationError(JDBHelperError):
    """Invalid or incomplete configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)
