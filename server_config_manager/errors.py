"""
Error handling for the server configuration store.

Structured error codes shared by the loader, merger, watcher and daemon.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from .models import FieldIssue


class ErrorCode(Enum):
    """
    Error codes for the server configuration store.

    Custom codes:
    - 1000-1099: Parse errors
    - 1100-1199: Configuration errors
    - 1500-1599: Watcher errors
    """

    # Parse errors (1000-1099)
    SYNTAX_ERROR = 1001
    TYPE_MISMATCH = 1002

    # Configuration errors (1100-1199)
    CONFIG_LOAD_FAILED = 1100

    # Watcher errors (1500-1599)
    WATCH_SUBSCRIPTION_FAILED = 1500


class ConfigError(Exception):
    """Base exception for configuration store errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for structured logging.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class ConfigParseError(ConfigError):
    """Configuration file could not be decoded or failed type checks."""

    def __init__(
        self,
        file_path: str,
        issues: List[FieldIssue],
        code: ErrorCode = ErrorCode.TYPE_MISMATCH
    ):
        """
        Initialize parse error.

        Args:
            file_path: Configuration file being parsed
            issues: Every problem found in the document
            code: SYNTAX_ERROR for undecodable JSON, TYPE_MISMATCH otherwise
        """
        self.file_path = file_path
        self.issues = list(issues)

        summary = "; ".join(issue.describe() for issue in self.issues) or "unknown error"
        super().__init__(
            code=code,
            message=f"Invalid configuration file {file_path}: {summary}",
            suggestion="Fix the listed keys; the previous configuration stays active",
            context={
                "file_path": file_path,
                "issues": [issue.model_dump() for issue in self.issues]
            }
        )


class ConfigLoadError(ConfigError):
    """Configuration loading error that prevents startup."""

    def __init__(self, file_path: str, reason: str):
        """
        Initialize configuration load error.

        Args:
            file_path: Path to configuration file
            reason: Reason for load failure
        """
        self.file_path = file_path
        self.reason = reason
        super().__init__(
            code=ErrorCode.CONFIG_LOAD_FAILED,
            message=f"Failed to load configuration from {file_path}: {reason}",
            suggestion="Check file syntax and value types",
            context={"file_path": file_path, "reason": reason}
        )


class WatchSubscriptionError(ConfigError):
    """The filesystem notification subscription could not be established."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code=ErrorCode.WATCH_SUBSCRIPTION_FAILED,
            message=f"Cannot watch {path}: {reason}",
            suggestion="Check that the directory exists and inotify limits are not exhausted",
            context={"path": path, "reason": reason}
        )
