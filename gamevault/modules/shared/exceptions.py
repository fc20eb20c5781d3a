"""
Domain exceptions for GameVault.

Purpose
-------
Define the structured, domain-specific exception hierarchy raised by the
account and economy services for business rule violations, resource
constraints and caller-facing errors. A transport layer (HTTP handlers,
CLI) translates them into responses using ``error_code`` and ``to_dict()``.

Design Notes
------------
- All domain exceptions inherit from `GameVaultDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Helper functions (`is_transient_error`, `get_error_severity`, `should_alert`)
  centralize common exception handling patterns.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from gamevault.core.exceptions import ErrorSeverity, GameVaultInfrastructureException


class GameVaultDomainException(Exception):
    """
    Base exception for all GameVault domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise GameVaultDomainException(
        ...     "Purchase failed",
        ...     {"reason": "catalog unavailable"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ValidationError(GameVaultDomainException):
    """
    Raised when caller input fails domain validation.

    Covers malformed arguments, non-positive amounts and invalid requests
    such as befriending yourself.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class UnauthorizedError(GameVaultDomainException):
    """
    Raised when a caller cannot be identified.

    Unknown usernames and wrong passwords share one message so login
    failures do not reveal which accounts exist.
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, reason: str = "Invalid credentials") -> None:
        self.reason = reason
        super().__init__(
            f"Unauthorized: {reason}",
            details={"reason": reason},
            error_code="UNAUTHORIZED",
        )


class ForbiddenError(GameVaultDomainException):
    """
    Raised when an identified caller is not allowed to perform an action.

    Args:
        action: The attempted action (e.g., "login", "equip_cosmetic")
        reason: Why it is not allowed (e.g., "player is banned")
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Forbidden '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code="FORBIDDEN",
        )


class ConflictError(GameVaultDomainException):
    """
    Raised when a write collides with existing state.

    Duplicate usernames within a game, repurchasing an owned cosmetic and
    unique-index violations detected at commit all map here.

    Args:
        resource_type: Kind of resource in conflict (e.g., "Player")
        reason: Description of the collision
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, reason: str) -> None:
        self.resource_type = resource_type
        self.reason = reason
        super().__init__(
            f"{resource_type} conflict: {reason}",
            details={"resource_type": resource_type, "reason": reason},
            error_code=f"{resource_type.upper()}_CONFLICT",
        )


class NotFoundError(GameVaultDomainException):
    """
    Raised when a requested resource cannot be found.

    Args:
        resource_type: Type of resource (e.g., "Player", "Cosmetic", "Item")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class InsufficientFundsError(GameVaultDomainException):
    """
    Raised when a player's credit balance cannot cover a debit.

    Args:
        required: Credits the operation needs
        current: Credits the player holds
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, required: int, current: int) -> None:
        self.required = required
        self.current = current
        super().__init__(
            f"Insufficient credits: need {required:,}, have {current:,}",
            details={
                "resource": "credits",
                "required": required,
                "current": current,
                "deficit": required - current,
            },
            error_code="INSUFFICIENT_CREDITS",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """True if the exception is marked retryable."""
    if isinstance(exc, (GameVaultDomainException, GameVaultInfrastructureException)):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """
    Get the severity level of an exception for logging.

    Unknown exceptions are treated as ERROR.
    """
    if isinstance(exc, (GameVaultDomainException, GameVaultInfrastructureException)):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
