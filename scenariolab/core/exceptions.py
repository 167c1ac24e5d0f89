"""Base exception and error reporting for ScenarioLab.

Every fatal error carries the process exit code the driver should use, so the
CLI never has to know the concrete exception types.
"""

from typing import Any

from scenariolab.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CYCLE = 2
EXIT_INTERRUPTED = 130


# =============================================================================
# Exception Classes
# =============================================================================


class ScenarioLabError(Exception):
    """Base exception for ScenarioLab errors.

    All application-specific exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        exit_code: int = EXIT_FAILURE,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            exit_code: Process exit status the driver reports.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.exit_code = exit_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """Short summary of the error type."""
        return self.code.replace("_", " ").title()


class TransactionError(ScenarioLabError):
    """Unit-of-work misuse (commit without transaction, nested begin, ...)."""

    def __init__(
        self,
        message: str = "Invalid transaction state",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="TRANSACTION_ERROR",
            exit_code=EXIT_FAILURE,
            details=details,
        )


# =============================================================================
# Reporting
# =============================================================================


def report_error(exc: ScenarioLabError) -> int:
    """Log a fatal application error and return its exit code.

    Args:
        exc: The raised exception.

    Returns:
        Exit code associated with the error.
    """
    logger.error(
        "app.error_reported",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        exit_code=exc.exit_code,
        details=exc.details,
    )
    return exc.exit_code
