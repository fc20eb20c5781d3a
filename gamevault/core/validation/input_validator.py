"""
Input Validation Layer for GameVault

Purpose
-------
Single source of truth for low-level validation of caller-supplied values:
amounts, names, identifiers, id batches and JSON-like blobs. Every service
validates its arguments here before opening a transaction, so invalid input
never reaches the database.

Responsibilities
----------------
- Validate and convert inputs to the expected types
- Enforce bounds for numbers and lengths for strings
- Validate id batches (type, count limits, duplicate collapse)
- Raise ValidationError with caller-friendly messages

Non-Responsibilities
--------------------
- Business rules (service layer)
- Authorization (identity service)
- Database constraints (models)

Observability
-------------
Every failure is logged at debug level with ``field_name``, ``raw_value``
(repr) and ``reason``.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, NoReturn, Optional, Sequence

from gamevault.core.logging.logger import get_logger
from gamevault.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)


def _raise_validation_error(field_name: str, value: Any, message: str) -> NoReturn:
    """Log and raise a ValidationError."""
    logger.debug(
        "Input validation failed",
        extra={
            "field_name": field_name,
            "raw_value": repr(value)[:200],
            "reason": message,
        },
    )
    raise ValidationError(field_name, message)


class InputValidator:
    """
    Centralized input validation.

    All methods are stateless, return the validated (normalized) value and
    raise ValidationError on failure.
    """

    # =========================================================================
    # INTEGER VALIDATION
    # =========================================================================

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
        allow_zero: bool = True,
    ) -> int:
        """
        Validate and convert value to integer with optional bounds checking.

        Booleans and non-integral floats are rejected; numeric strings
        such as ``"25"`` are accepted.

        Args:
            value: Input value to validate
            field_name: Name of field for error messages/logging
            min_value: Minimum allowed value (inclusive)
            max_value: Maximum allowed value (inclusive)
            allow_zero: Whether zero is acceptable

        Returns:
            Validated integer value

        Raises:
            ValidationError: If validation fails
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        if isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a whole number")

        if isinstance(value, float) and not value.is_integer():
            _raise_validation_error(
                field_name, value, f"Must be a whole number, got '{value}'"
            )

        try:
            int_value = int(value)
        except (ValueError, TypeError):
            _raise_validation_error(
                field_name,
                value,
                f"Must be a whole number, got '{value}'",
            )

        if not allow_zero and int_value == 0:
            _raise_validation_error(field_name, int_value, "Cannot be zero")

        if min_value is not None and int_value < min_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Must be at least {min_value}, got {int_value}",
            )

        if max_value is not None and int_value > max_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Cannot exceed {max_value}, got {int_value}",
            )

        return int_value

    @staticmethod
    def validate_positive_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        """Validate that value is a strictly positive integer (>= 1)."""
        return InputValidator.validate_integer(
            value=value,
            field_name=field_name,
            min_value=1,
            max_value=max_value,
            allow_zero=False,
        )

    @staticmethod
    def validate_non_negative_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        """Validate that value is a non-negative integer (>= 0)."""
        return InputValidator.validate_integer(
            value=value,
            field_name=field_name,
            min_value=0,
            max_value=max_value,
            allow_zero=True,
        )

    @staticmethod
    def validate_credit_amount(
        value: Any,
        field_name: str = "amount",
        max_value: Optional[int] = None,
    ) -> int:
        """Validate a positive credit amount."""
        return InputValidator.validate_positive_integer(
            value=value,
            field_name=field_name,
            max_value=max_value,
        )

    # =========================================================================
    # STRING VALIDATION
    # =========================================================================

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        allowed_chars: Optional[str] = None,
        strip: bool = True,
    ) -> str:
        """
        Validate string input with optional length and character constraints.

        Args:
            value: Must already be a ``str``
            field_name: Name of field for error messages
            min_length: Minimum string length
            max_length: Maximum string length
            allowed_chars: Regex character class (e.g. ``'a-zA-Z0-9_'``)
            strip: Trim surrounding whitespace first (disable for passwords)

        Returns:
            Validated string

        Raises:
            ValidationError: If validation fails
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        if not isinstance(value, str):
            _raise_validation_error(field_name, value, "Must be a string")

        str_value = value.strip() if strip else value

        if min_length is not None and len(str_value) < min_length:
            _raise_validation_error(
                field_name,
                str_value,
                f"Must be at least {min_length} characters",
            )

        if max_length is not None and len(str_value) > max_length:
            _raise_validation_error(
                field_name,
                str_value,
                f"Cannot exceed {max_length} characters",
            )

        if allowed_chars is not None and not re.fullmatch(f"[{allowed_chars}]+", str_value):
            _raise_validation_error(field_name, str_value, "Contains invalid characters")

        return str_value

    @staticmethod
    def validate_identifier(value: Any, field_name: str) -> str:
        """Validate a non-empty string identifier (player id, cosmetic id)."""
        return InputValidator.validate_string(
            value, field_name=field_name, min_length=1, max_length=64
        )

    # =========================================================================
    # CHOICE VALIDATION
    # =========================================================================

    @staticmethod
    def validate_choice(
        value: Any,
        field_name: str,
        valid_choices: Sequence[str],
    ) -> str:
        """
        Validate that value is one of the allowed choices (case-insensitive).

        Returns:
            Lowercased validated choice
        """
        str_value = str(value).lower().strip()
        normalized_choices = {choice.lower() for choice in valid_choices}

        if str_value not in normalized_choices:
            choices_str = ", ".join(sorted(valid_choices))
            _raise_validation_error(
                field_name,
                value,
                f"Invalid choice '{value}'. Must be one of: {choices_str}",
            )

        return str_value

    @staticmethod
    def validate_bool(value: Any, field_name: str) -> bool:
        if not isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be true or false")
        return value

    # =========================================================================
    # BATCH VALIDATION
    # =========================================================================

    @staticmethod
    def validate_id_list(
        values: Any,
        field_name: str,
        min_count: Optional[int] = 1,
        max_count: Optional[int] = None,
    ) -> List[str]:
        """
        Validate a list of string ids with optional count limits.

        Duplicates are collapsed (first occurrence wins); count limits apply
        to the collapsed list.

        Raises:
            ValidationError: If the value is not a list/tuple, an element is
                not a non-empty string, or a count limit is violated.
        """
        if not isinstance(values, (list, tuple)):
            _raise_validation_error(field_name, values, "Must be a list")

        validated_ids: List[str] = []
        seen: set[str] = set()

        for idx, raw_value in enumerate(values):
            if not isinstance(raw_value, str) or not raw_value.strip():
                _raise_validation_error(
                    field_name,
                    raw_value,
                    f"Item {idx}: must be a non-empty string",
                )
            if raw_value not in seen:
                seen.add(raw_value)
                validated_ids.append(raw_value)

        if min_count is not None and len(validated_ids) < min_count:
            _raise_validation_error(
                field_name,
                values,
                f"Must provide at least {min_count} items",
            )

        if max_count is not None and len(validated_ids) > max_count:
            _raise_validation_error(
                field_name,
                len(validated_ids),
                f"Cannot provide more than {max_count} items",
            )

        return validated_ids

    # =========================================================================
    # JSON BLOB VALIDATION
    # =========================================================================

    @staticmethod
    def validate_mapping(
        value: Any,
        field_name: str,
        max_keys: Optional[int] = None,
        key_max_length: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Validate a JSON-object-like mapping with string keys.

        Values are opaque and not inspected.
        """
        if not isinstance(value, Mapping):
            _raise_validation_error(field_name, value, "Must be an object")

        if max_keys is not None and len(value) > max_keys:
            _raise_validation_error(
                field_name, len(value), f"Cannot contain more than {max_keys} keys"
            )

        for key in value:
            if not isinstance(key, str) or not key:
                _raise_validation_error(field_name, key, "Keys must be non-empty strings")
            if key_max_length is not None and len(key) > key_max_length:
                _raise_validation_error(
                    field_name, key, f"Key cannot exceed {key_max_length} characters"
                )

        return dict(value)
