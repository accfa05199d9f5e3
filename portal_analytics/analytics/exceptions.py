"""
Analytics Exceptions

Raised only for collaborator failures. Data drift inside orders and the
catalog (unknown identifiers, malformed amounts) is never exceptional.
"""

from typing import Any, Optional


class AnalyticsError(Exception):
    """Base exception for the analytics engine"""
    pass


class DataSourceUnavailableError(AnalyticsError):
    """A catalog or order fetch failed; the engine does not retry"""

    def __init__(
        self,
        source: str,
        business_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.source = source
        self.business_id = business_id
        self.original_error = original_error

        message = f"{source} unavailable"
        if business_id:
            message = f"{message} for business '{business_id}'"
        if original_error:
            message = f"{message} (Original error: {original_error})"

        super().__init__(message)


class SnapshotValidationError(AnalyticsError):
    """A snapshot file failed ERROR-severity quality checks"""

    def __init__(self, path: str, validation_result: Any):
        self.path = path
        self.validation_result = validation_result
        failed = [
            check.name for check in getattr(validation_result, "checks", [])
            if not check.passed
        ]
        super().__init__(f"Snapshot '{path}' failed validation: {', '.join(failed) or 'unknown'}")
