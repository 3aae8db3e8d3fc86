"""
Exception hierarchy for ForbiddenBlocks.

These exceptions are raised where a failure happens inside the core and caught
at its public boundary, where they are turned into safe defaults: fail-open for
gameplay decisions, fail-soft for settings. None of them are expected to reach
the event layer.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information attached to a ForbiddenBlocks error."""

    scope_id: str | None = None
    registry_id: str | None = None
    file_path: str | None = None
    operation: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class ForbiddenBlocksError(Exception):
    """
    Base exception for all ForbiddenBlocks errors.

    Carries structured context and logs itself when constructed so that a
    caught-and-degraded failure still leaves a trace.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level)
        log_method(
            "ForbiddenBlocks error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ItemIdentificationError(ForbiddenBlocksError):
    """The item in hand has no usable identity (empty stack, unregistered type)."""

    log_level = "warning"


class ComponentSerializationError(ForbiddenBlocksError):
    """A single structured-metadata slot could not be serialized."""

    def __init__(self, message: str, component_type: str, context: ErrorContext | None = None, **kwargs):
        self.component_type = component_type
        super().__init__(message, context, **kwargs)


class PersistenceError(ForbiddenBlocksError):
    """Reading or writing a backing file failed."""

    def __init__(self, message: str, context: ErrorContext | None = None, operation: str = "unknown", **kwargs):
        self.operation = operation
        super().__init__(message, context, **kwargs)


class ScopeResolutionError(ForbiddenBlocksError):
    """The connection context could not be turned into a scope id."""

    log_level = "warning"


class ConfigurationError(ForbiddenBlocksError):
    """Invalid or unusable configuration."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        self.config_key = config_key
        super().__init__(message, context, **kwargs)
