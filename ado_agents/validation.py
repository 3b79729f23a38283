"""
Input validation for tool arguments.

Rejects malformed IDs, GUIDs and traversal limits before any Azure DevOps
API call is made.
"""

import re
import uuid
from typing import Any, Optional

from .constants import HierarchyLimits, QueryLimits


class ValidationError(Exception):
    """
    Raised when input validation fails.

    Attributes:
        field: Name of the offending argument, if known
        message: Human-readable description of the problem
    """

    def __init__(self, field: Optional[str] = None, message: Optional[str] = None):
        # ValidationError("message") and ValidationError("field", "message") are both accepted
        if message is None:
            field, message = None, field
        self.field = field
        self.message = message or "Invalid input"
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error': self.__class__.__name__,
            'field': self.field,
            'message': self.message
        }


# Project names: no leading/trailing whitespace, none of the characters
# Azure DevOps rejects in project names
_INVALID_PROJECT_CHARS = re.compile(r'[\\/:*?"<>|;#$@%+,=\[\]{}]')
MAX_PROJECT_NAME_LENGTH = 64


class IdValidator:
    """Validator for integer identifiers (work items, pull requests)."""

    @staticmethod
    def validate(value: Any, field: str) -> int:
        """
        Validate that value is a positive integer.

        Args:
            value: The value to validate
            field: Argument name used in the error message

        Returns:
            The validated ID (unchanged)

        Raises:
            ValidationError: If value is not a positive integer
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(
                field,
                f"Invalid {field}: {value!r}. Must be a positive integer."
            )
        if value <= 0:
            raise ValidationError(
                field,
                f"Invalid {field}: {value}. Must be a positive integer."
            )
        return value


class GuidValidator:
    """Validator for GUID arguments (saved query IDs, repository IDs)."""

    @staticmethod
    def validate(value: Optional[str], field: str) -> str:
        """
        Validate and normalize a GUID string.

        Accepts the braced and hyphen-less forms as well.

        Returns:
            The canonical lowercase hyphenated GUID

        Raises:
            ValidationError: If value does not parse as a GUID
        """
        if not value or not isinstance(value, str):
            raise ValidationError(field, f"{field} cannot be empty")

        try:
            return str(uuid.UUID(value.strip()))
        except ValueError:
            raise ValidationError(
                field,
                f"Invalid {field}: '{value}'. Must be a GUID "
                "(e.g. 0b1c2d3e-4f50-6172-8394-a5b6c7d8e9f0)."
            ) from None


class ProjectValidator:
    """Validator for Azure DevOps project names."""

    @staticmethod
    def validate(project: Optional[str]) -> str:
        if not project or not project.strip():
            raise ValidationError("project", "Project name cannot be empty")

        project = project.strip()

        if len(project) > MAX_PROJECT_NAME_LENGTH:
            raise ValidationError(
                "project",
                f"Project name too long: {len(project)} characters "
                f"(max: {MAX_PROJECT_NAME_LENGTH})"
            )

        if _INVALID_PROJECT_CHARS.search(project):
            raise ValidationError(
                "project",
                f"Invalid project name: '{project}'. Contains characters not allowed by Azure DevOps."
            )

        return project


class TraversalLimitsValidator:
    """Validator for hierarchy traversal depth and item caps."""

    @staticmethod
    def validate(max_depth: Any, max_items: Any) -> tuple:
        """
        Validate traversal limits.

        Returns:
            (max_depth, max_items) unchanged

        Raises:
            ValidationError: If either limit is out of range
        """
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise ValidationError("max_depth", f"max_depth must be an integer, got {type(max_depth).__name__}")
        if not 0 <= max_depth <= HierarchyLimits.MAX_DEPTH:
            raise ValidationError(
                "max_depth",
                f"Invalid max_depth: {max_depth}. Must be between 0 and {HierarchyLimits.MAX_DEPTH}."
            )

        if isinstance(max_items, bool) or not isinstance(max_items, int):
            raise ValidationError("max_items", f"max_items must be an integer, got {type(max_items).__name__}")
        if not 1 <= max_items <= HierarchyLimits.MAX_ITEMS:
            raise ValidationError(
                "max_items",
                f"Invalid max_items: {max_items}. Must be between 1 and {HierarchyLimits.MAX_ITEMS}."
            )

        return max_depth, max_items


# Convenience functions for common validations

def validate_work_item_id(work_item_id: Any) -> int:
    """Validate a work item ID."""
    return IdValidator.validate(work_item_id, "work_item_id")


def validate_pull_request_id(pull_request_id: Any) -> int:
    """Validate a pull request ID."""
    return IdValidator.validate(pull_request_id, "pull_request_id")


def validate_guid(value: Optional[str], field: str = "id") -> str:
    """Validate and normalize a GUID."""
    return GuidValidator.validate(value, field)


def validate_project(project: Optional[str]) -> str:
    """Validate a project name."""
    return ProjectValidator.validate(project)


def validate_traversal_limits(max_depth: Any, max_items: Any) -> tuple:
    """Validate hierarchy traversal limits."""
    return TraversalLimitsValidator.validate(max_depth, max_items)


def validate_top(top: Any) -> int:
    """Validate a result-count limit, capped at QueryLimits.MAX_LIMIT."""
    if isinstance(top, bool) or not isinstance(top, int) or top <= 0:
        raise ValidationError("top", f"Invalid top: {top!r}. Must be a positive integer.")
    return min(top, QueryLimits.MAX_LIMIT)
